"""Integration tests for the batch-addressed routes.

Batch labels contain spaces, ``/`` and ``#``; clients percent-encode the
whole label into the path.

Covers:
- GET  /orders/batch/{label}/           (owner or administrator)
- GET  /orders/batch/{label}/products/  (buy again)
- PATCH /orders/batch/{label}/status/   (administrator, all-or-nothing)
"""

from __future__ import annotations

from decimal import Decimal
from urllib.parse import quote

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderStatusHistory
from modules.products.models import ProductStatus

pytestmark = pytest.mark.integration


def batch_url(label: str, suffix: str = "") -> str:
    return f"/api/v1/orders/batch/{quote(label, safe='')}/{suffix}"


@pytest.fixture()
def batch(buyer, make_product, place_batch):
    return place_batch(
        buyer,
        make_product(name="Widget A", wholesale_case_price=Decimal("10.00")),
        make_product(name="Widget B", wholesale_case_price=Decimal("7.25")),
        quantity=2,
    )


class TestBatchDetail:
    def test_owner_reads_batch(self, buyer_client, batch):
        response = buyer_client.get(batch_url(batch.batch_number))

        assert response.status_code == 200
        data = response.json()
        assert data["batchNumber"] == batch.batch_number
        assert [o["product_name"] for o in data["orders"]] == ["Widget A", "Widget B"]

    def test_other_buyer_gets_404(self, other_buyer, batch):
        from rest_framework.test import APIClient

        client = APIClient()
        client.force_authenticate(user=other_buyer)

        response = client.get(batch_url(batch.batch_number))

        assert response.status_code == 404
        assert response.json()["code"] == "batch_not_found"

    def test_admin_reads_any_batch(self, admin_client, batch):
        assert admin_client.get(batch_url(batch.batch_number)).status_code == 200

    def test_unknown_batch(self, buyer_client):
        response = buyer_client.get(batch_url("Jane - 01/01/2020 #9999"))
        assert response.status_code == 404


class TestBuyAgain:
    def test_partial_availability(self, buyer_client, batch):
        gone = Order.objects.get(batch__label=batch.batch_number, product_name="Widget B").product
        gone.status = ProductStatus.INACTIVE
        gone.save()

        response = buyer_client.get(batch_url(batch.batch_number, "products/"))

        assert response.status_code == 200
        data = response.json()
        assert data["batch_number"] == batch.batch_number
        assert [i["product_name"] for i in data["available"]] == ["Widget A"]
        assert data["available"][0]["product"]["wholesale_case_price"] == "10.00"
        assert [i["product_name"] for i in data["unavailable"]] == ["Widget B"]
        assert data["unavailable"][0]["product"] is None


class TestBatchStatus:
    def test_completion_moves_revenue_into_completed(self, admin_client, batch):
        before = admin_client.get("/api/v1/orders/stats/").json()

        response = admin_client.patch(
            batch_url(batch.batch_number, "status/"),
            {"status": "completed", "notes": "Delivered"},
            format="json",
        )

        assert response.status_code == 200
        assert {o["status"] for o in response.json()["orders"]} == {"completed"}
        assert set(
            Order.objects.filter(batch__label=batch.batch_number).values_list("status", flat=True)
        ) == {OrderStatus.COMPLETED}

        after = admin_client.get("/api/v1/orders/stats/").json()
        delta = Decimal(after["completed_revenue"]) - Decimal(before["completed_revenue"])
        assert delta == batch.total_amount == Decimal("34.50")

    def test_history_records_operator(self, admin_client, admin_user, batch):
        admin_client.patch(
            batch_url(batch.batch_number, "status/"), {"status": "cancelled"}, format="json"
        )

        history = OrderStatusHistory.objects.filter(new_status=OrderStatus.CANCELLED)
        assert history.count() == 2
        assert {h.user_id for h in history} == {admin_user.pk}

    def test_invalid_status_value(self, admin_client, batch):
        response = admin_client.patch(
            batch_url(batch.batch_number, "status/"), {"status": "shipped"}, format="json"
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_status"

    def test_one_blocked_line_rejects_the_batch(self, admin_client, batch):
        first = batch.orders[0]
        admin_client.patch(f"/api/v1/orders/{first.id}/status/", {"status": "completed"}, format="json")
        admin_client.patch(f"/api/v1/orders/{first.id}/status/", {"status": "cancelled"}, format="json")

        response = admin_client.patch(
            batch_url(batch.batch_number, "status/"), {"status": "completed"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_status_transition"
        assert Order.objects.get(id=batch.orders[1].id).status == OrderStatus.PENDING

    def test_unknown_batch(self, admin_client):
        response = admin_client.patch(
            batch_url("Nobody - 01/01/2020 #0000", "status/"), {"status": "completed"}, format="json"
        )
        assert response.status_code == 404

    def test_buyer_forbidden(self, buyer_client, batch):
        response = buyer_client.patch(
            batch_url(batch.batch_number, "status/"), {"status": "completed"}, format="json"
        )
        assert response.status_code == 403

    def test_status_update_mails_buyer(self, admin_client, batch, mailoutbox):
        admin_client.patch(
            batch_url(batch.batch_number, "status/"), {"status": "completed"}, format="json"
        )

        assert [m.to for m in mailoutbox][-1] == ["jane@example.com"]
        assert "completed" in mailoutbox[-1].subject
