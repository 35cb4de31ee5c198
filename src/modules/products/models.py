"""Catalog models: vendors and the wholesale products they supply.

Business rules implemented:
- SKU is unique and normalised to uppercase.
- Wholesale prices, when present, cannot be negative.
- Soft delete via ``deleted_at``: order lines keep pointing at removed
  products, which is how "buy again" tells them apart.
- ``vendor_name`` is free text kept next to the ``vendor`` FK; imported
  products often name a vendor before the vendor row exists.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Vendor(SoftDeleteModel):
    name = models.CharField(max_length=255, unique=True)
    contact_email = models.EmailField(blank=True, default="")

    class Meta:
        db_table = "vendors"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Product(SoftDeleteModel):
    """Wholesale product.

    ``main_category`` / ``sub_category`` drive replacement resolution; both
    may be blank for products imported without a taxonomy.
    """

    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    vendor = models.ForeignKey(
        "products.Vendor",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )
    vendor_name = models.CharField(max_length=255, blank=True, default="")
    main_category = models.CharField(max_length=120, blank=True, default="")
    sub_category = models.CharField(max_length=120, blank=True, default="")
    wholesale_unit_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    wholesale_case_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    case_pack = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
            models.Index(fields=["sub_category"], name="products_sub_category_idx"),
            models.Index(fields=["main_category"], name="products_main_category_idx"),
        ]

    @property
    def is_available(self) -> bool:
        return not self.is_deleted and self.status == ProductStatus.ACTIVE

    @property
    def display_vendor_name(self) -> str:
        if self.vendor_id and self.vendor is not None:
            return self.vendor.name
        return self.vendor_name

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        for field in ("wholesale_unit_price", "wholesale_case_price"):
            value = getattr(self, field)
            if value is not None and value < Decimal("0"):
                raise ValidationError({field: "Price cannot be negative."})

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.vendor_id and not self.vendor_name and self.vendor is not None:
            self.vendor_name = self.vendor.name
        super().save(*args, **kwargs)
        if is_new:
            logger.info("product_created", product_id=str(self.id), sku=self.sku)

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
