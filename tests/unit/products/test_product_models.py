"""Unit tests for the Vendor and Product models.

Covers:
- SKU uppercase normalisation on save and full_clean.
- SKU uniqueness constraint.
- Non-negative wholesale price validation.
- vendor_name copied from the vendor FK.
- Availability (soft delete and inactive status).
- INFO log on product creation.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError

from modules.products.models import Product, ProductStatus, Vendor

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_product(**overrides) -> Product:
    """Build and full_clean a Product, returning the unsaved instance."""
    defaults = {
        "sku": f"tst-{uuid.uuid4().hex[:6]}",
        "name": "Test Product",
        "wholesale_unit_price": Decimal("2.50"),
        "wholesale_case_price": Decimal("24.00"),
    }
    defaults.update(overrides)
    product = Product(**defaults)
    product.full_clean()
    return product


# ---------------------------------------------------------------------------
# SKU
# ---------------------------------------------------------------------------


class TestSku:
    def test_uppercased_on_save(self):
        product = Product.objects.create(sku="  abc-1 ", name="Lower")
        product.refresh_from_db()
        assert product.sku == "ABC-1"

    def test_uppercased_via_full_clean(self):
        product = _make_product(sku="xyz-9")
        assert product.sku == "XYZ-9"

    def test_duplicate_sku_raises(self):
        Product.objects.create(sku="DUP-1", name="First")
        with pytest.raises(IntegrityError):
            Product.objects.create(sku="DUP-1", name="Second")


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


class TestPriceValidation:
    @pytest.mark.parametrize("field", ["wholesale_unit_price", "wholesale_case_price"])
    def test_negative_price_raises(self, field):
        with pytest.raises(ValidationError) as exc_info:
            _make_product(**{field: Decimal("-0.01")})
        assert field in exc_info.value.message_dict

    def test_missing_prices_allowed(self):
        product = _make_product(wholesale_unit_price=None, wholesale_case_price=None)
        assert product.wholesale_case_price is None

    def test_zero_price_allowed(self):
        product = _make_product(wholesale_unit_price=Decimal("0.00"))
        assert product.wholesale_unit_price == Decimal("0.00")


# ---------------------------------------------------------------------------
# Vendor
# ---------------------------------------------------------------------------


class TestVendorName:
    def test_copied_from_vendor(self):
        vendor = Vendor.objects.create(name="Initech")
        product = Product.objects.create(sku="V-1", name="Stapler", vendor=vendor)
        assert product.vendor_name == "Initech"
        assert product.display_vendor_name == "Initech"

    def test_free_text_without_vendor(self):
        product = Product.objects.create(sku="V-2", name="Mug", vendor_name="Unknown Co")
        assert product.vendor_id is None
        assert product.display_vendor_name == "Unknown Co"

    def test_vendor_fk_wins_over_stale_name(self):
        vendor = Vendor.objects.create(name="Initech")
        product = Product.objects.create(
            sku="V-3", name="Chair", vendor=vendor, vendor_name="Old Name"
        )
        assert product.display_vendor_name == "Initech"


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


class TestAvailability:
    def test_active_product_available(self):
        product = Product.objects.create(sku="A-1", name="Active")
        assert product.status == ProductStatus.ACTIVE
        assert product.is_available is True

    def test_inactive_product_unavailable(self):
        product = Product.objects.create(sku="A-2", name="Off", status=ProductStatus.INACTIVE)
        assert product.is_available is False

    def test_soft_deleted_product_unavailable(self):
        product = Product.objects.create(sku="A-3", name="Gone")
        product.delete()
        assert product.is_available is False
        assert Product.objects.filter(pk=product.pk).exists()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestProductLogging:
    """Product creation emits an INFO log."""

    def test_creation_logs_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="modules.products.models"):
            Product.objects.create(sku="LOG-001", name="Logged Product")
        assert any("product_created" in r.getMessage() for r in caplog.records)

    def test_update_does_not_log_creation(self, caplog):
        product = Product.objects.create(sku="LOG-002", name="No Re-log")
        caplog.clear()
        with caplog.at_level(logging.INFO, logger="modules.products.models"):
            product.name = "Updated Name"
            product.save(update_fields=["name"])
        assert not [r for r in caplog.records if "product_created" in r.getMessage()]
