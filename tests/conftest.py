from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.orders.constants import PricingMode
from modules.orders.dtos import AddCartItemDTO, SubmitBatchDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import CartService, OrderService
from modules.products.models import Product, ProductStatus, Vendor
from modules.products.repositories.django_repository import ProductDjangoRepository

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def buyer():
    return User.objects.create_user(
        username="jane",
        email="jane@example.com",
        password="testpass123",
        first_name="Jane",
    )


@pytest.fixture()
def other_buyer():
    return User.objects.create_user(
        username="omar",
        email="omar@example.com",
        password="testpass123",
        first_name="Omar",
    )


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="admin",
        email="admin@example.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture()
def buyer_client(buyer):
    client = APIClient()
    client.force_authenticate(user=buyer)
    return client


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def acme():
    return Vendor.objects.create(name="Acme Supply")


@pytest.fixture()
def globex():
    return Vendor.objects.create(name="Globex")


@pytest.fixture()
def make_product(acme):
    counter = {"n": 0}

    def _make(**overrides: Any) -> Product:
        counter["n"] += 1
        data: Dict[str, Any] = {
            "sku": f"SKU-{counter['n']:04d}",
            "name": f"Product {counter['n']}",
            "vendor": acme,
            "main_category": "Hardware",
            "sub_category": "Fasteners",
            "wholesale_unit_price": Decimal("1.00"),
            "wholesale_case_price": Decimal("10.00"),
            "case_pack": 10,
            "status": ProductStatus.ACTIVE,
        }
        data.update(overrides)
        return Product.objects.create(**data)

    return _make


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


class RecordingNotifier:
    """In-memory notification sink; ``fail=True`` makes every call raise."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: List[tuple] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if self.fail:
            raise ConnectionError(f"{name} unavailable")

    def send_order_confirmation(self, buyer_email, batch_number, lines):
        self._record("order_confirmation", buyer_email, batch_number, lines)

    def send_support_notification(self, buyer_name, batch_number, item_count, total_amount):
        self._record("support", buyer_name, batch_number, item_count, total_amount)

    def send_status_update(self, buyer_email, batch_number, lines, new_status, notes):
        self._record("status_update", buyer_email, batch_number, lines, new_status, notes)

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def order_service(notifier):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        notifier=notifier,
    )


@pytest.fixture()
def cart_service():
    return CartService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def place_batch(cart_service, order_service):
    """Put ``products`` in ``user``'s cart and submit them as one batch."""

    def _place(user, *products, quantity: int = 1, pricing_mode: str = PricingMode.CASE):
        ids = [
            cart_service.add_item(
                AddCartItemDTO(
                    buyer_id=user.pk,
                    buyer_email=user.email,
                    product_id=product.id,
                    quantity=quantity,
                    pricing_mode=pricing_mode,
                )
            ).id
            for product in products
        ]
        return order_service.submit_batch(
            SubmitBatchDTO(
                buyer_id=user.pk,
                buyer_email=user.email,
                buyer_name=user.first_name,
                cart_item_ids=ids,
            )
        )

    return _place
