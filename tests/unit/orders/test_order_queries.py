"""Unit tests for OrderQueryService read projections."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from freezegun import freeze_time

from modules.orders.constants import OrderStatus
from modules.orders.dtos import AddCartItemDTO
from modules.orders.exceptions import BatchNotFound, BuyerNotFound
from modules.orders.queries import OrderQueryService
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.products.models import ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def queries():
    return OrderQueryService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


def _cart_item(cart_service, user, product, quantity=1):
    return cart_service.add_item(
        AddCartItemDTO(
            buyer_id=user.pk,
            buyer_email=user.email,
            product_id=product.id,
            quantity=quantity,
        )
    )


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


class TestBuyerBatches:
    def test_summary_totals(self, buyer, make_product, place_batch, queries):
        result = place_batch(buyer, make_product(), make_product(), quantity=2)

        (summary,) = queries.list_buyer_batches(buyer.pk)

        assert summary.batch_number == result.batch_number
        assert summary.item_count == 2
        assert summary.total_amount == Decimal("40.00")
        assert summary.status == OrderStatus.PENDING

    @pytest.mark.parametrize(
        "statuses, expected",
        [
            ((OrderStatus.COMPLETED, OrderStatus.PENDING), OrderStatus.PENDING),
            ((OrderStatus.COMPLETED, OrderStatus.CANCELLED), OrderStatus.COMPLETED),
            ((OrderStatus.CANCELLED, OrderStatus.CANCELLED), OrderStatus.CANCELLED),
        ],
    )
    def test_reports_worst_status(
        self, statuses, expected, buyer, make_product, place_batch, order_service, queries
    ):
        result = place_batch(buyer, make_product(), make_product())
        for line, status in zip(result.orders, statuses):
            if status != OrderStatus.PENDING:
                order_service.set_order_status(line.id, status)

        (summary,) = queries.list_buyer_batches(buyer.pk)

        assert summary.status == expected

    def test_scoped_to_buyer(self, buyer, other_buyer, make_product, place_batch, queries):
        place_batch(other_buyer, make_product())
        assert queries.list_buyer_batches(buyer.pk) == []

    def test_date_range(self, buyer, make_product, place_batch, queries):
        with freeze_time("2024-01-10 10:00:00"):
            place_batch(buyer, make_product())
        with freeze_time("2024-02-10 10:00:00"):
            later = place_batch(buyer, make_product())

        summaries = queries.list_buyer_batches(buyer.pk, start_date=date(2024, 2, 1))

        assert [s.batch_number for s in summaries] == [later.batch_number]

    def test_batch_lines_hidden_from_other_buyers(
        self, buyer, other_buyer, make_product, place_batch, queries
    ):
        result = place_batch(buyer, make_product())
        with pytest.raises(BatchNotFound):
            queries.get_batch_lines(result.batch_number, buyer_id=other_buyer.pk)
        assert len(queries.get_batch_lines(result.batch_number)) == 1


# ---------------------------------------------------------------------------
# Buy again
# ---------------------------------------------------------------------------


class TestBuyAgain:
    def test_partitions_by_current_availability(self, buyer, make_product, place_batch, queries):
        kept = make_product(name="Kept")
        deleted = make_product(name="Deleted")
        inactive = make_product(name="Inactive")
        result = place_batch(buyer, kept, deleted, inactive)
        deleted.delete()
        inactive.status = ProductStatus.INACTIVE
        inactive.save()

        projection = queries.get_batch_products(result.batch_number, buyer_id=buyer.pk)

        assert [item.product_name for item in projection.available] == ["Kept"]
        assert projection.available[0].product["sku"] == kept.sku
        assert sorted(item.product_name for item in projection.unavailable) == [
            "Deleted",
            "Inactive",
        ]
        assert all(item.product is None for item in projection.unavailable)

    def test_unknown_batch(self, buyer, queries):
        with pytest.raises(BatchNotFound):
            queries.get_batch_products("Nobody - 01/01/2024 #0000", buyer_id=buyer.pk)


# ---------------------------------------------------------------------------
# Administrator projections
# ---------------------------------------------------------------------------


class TestOngoing:
    def test_lists_open_cart_rows(self, buyer, other_buyer, make_product, cart_service, queries):
        _cart_item(cart_service, buyer, make_product())
        _cart_item(cart_service, other_buyer, make_product())

        assert queries.list_ongoing().count() == 2
        assert [o.buyer_id for o in queries.list_ongoing(buyer_email="JANE@example.com")] == [
            buyer.pk
        ]

    def test_unknown_buyer_email(self, queries):
        with pytest.raises(BuyerNotFound):
            list(queries.list_ongoing(buyer_email="ghost@example.com"))


class TestStats:
    def test_counts_and_revenue(
        self, buyer, make_product, place_batch, cart_service, order_service, queries
    ):
        first = place_batch(buyer, make_product(), make_product())
        place_batch(buyer, make_product())
        _cart_item(cart_service, buyer, make_product())
        order_service.set_order_status(first.orders[0].id, OrderStatus.COMPLETED)
        order_service.set_order_status(first.orders[1].id, OrderStatus.CANCELLED)

        stats = queries.get_stats()

        assert stats.total_orders == 3
        assert stats.total_batches == 2
        assert stats.in_cart_orders == 1
        assert (stats.pending_orders, stats.completed_orders, stats.cancelled_orders) == (1, 1, 1)
        assert stats.total_revenue == Decimal("30.00")
        assert stats.completed_revenue == Decimal("10.00")

    def test_empty(self, queries):
        stats = queries.get_stats()
        assert stats.total_orders == 0
        assert stats.total_revenue == Decimal("0.00")


class TestBuyerOverview:
    def test_activity_per_buyer(
        self, buyer, other_buyer, admin_user, make_product, place_batch, cart_service,
        order_service, queries,
    ):
        result = place_batch(buyer, make_product())
        order_service.set_order_status(result.orders[0].id, OrderStatus.COMPLETED)
        place_batch(buyer, make_product())
        _cart_item(cart_service, other_buyer, make_product())

        overview = queries.buyer_overview()

        by_email = {entry.email: entry for entry in overview.buyers}
        assert set(by_email) == {"jane@example.com", "omar@example.com"}
        jane = by_email["jane@example.com"]
        assert (jane.pending_batches, jane.completed_batches) == (1, 1)
        assert jane.completed_revenue == Decimal("10.00")
        assert by_email["omar@example.com"].open_cart_items == 1
        assert overview.active_buyers == 2

    def test_active_only(self, buyer, other_buyer, make_product, place_batch, queries):
        place_batch(buyer, make_product())

        overview = queries.buyer_overview(active_only=True)

        assert overview.total_buyers == 2
        assert [entry.email for entry in overview.buyers] == ["jane@example.com"]

    def test_date_range_excludes_older_batches(self, buyer, make_product, place_batch, queries):
        with freeze_time("2024-01-10 10:00:00"):
            place_batch(buyer, make_product())

        overview = queries.buyer_overview(start_date=date(2024, 2, 1))

        assert overview.buyers[0].pending_batches == 0
        assert overview.active_buyers == 0
