"""Read-side projections over order lines and batches.

Buyer-facing queries are always scoped by ``buyer_id``; administrator
queries pass ``buyer_id=None``.  Nothing here writes.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

import structlog
from django.contrib.auth import get_user_model
from django.db.models import (
    Case,
    Count,
    DecimalField,
    IntegerField,
    Max,
    Min,
    Q,
    QuerySet,
    Sum,
    Value,
    When,
)
from django.db.models.functions import Coalesce

from modules.orders.constants import STATUS_SEVERITY, SUBMITTED_STATES, OrderStatus
from modules.orders.dtos import (
    BatchSummaryDTO,
    BuyAgainDTO,
    BuyAgainItemDTO,
    BuyerActivityDTO,
    BuyerOverviewDTO,
    OrderStatsDTO,
)
from modules.orders.exceptions import BatchNotFound, BuyerNotFound
from modules.orders.models import Order
from modules.products.dtos import ProductSummaryDTO

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

ZERO_AMOUNT = Value(Decimal("0.00"), output_field=DecimalField(max_digits=14, decimal_places=2))

_SEVERITY_TO_STATUS = {severity: status for status, severity in STATUS_SEVERITY.items()}


def _date_bounded(
    queryset: QuerySet,
    field: str,
    start_date: Optional[date],
    end_date: Optional[date],
) -> QuerySet:
    if start_date:
        queryset = queryset.filter(**{f"{field}__date__gte": start_date})
    if end_date:
        queryset = queryset.filter(**{f"{field}__date__lte": end_date})
    return queryset


class OrderQueryService:
    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Buyer scope
    # ------------------------------------------------------------------

    def list_buyer_orders(
        self,
        buyer_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> QuerySet:
        queryset = self._order_repo.list(
            {"buyer_id": buyer_id, "status__in": SUBMITTED_STATES}
        )
        queryset = _date_bounded(queryset, "submitted_at", start_date, end_date)
        return queryset.order_by("-submitted_at", "-created_at")

    def list_buyer_batches(
        self,
        buyer_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[BatchSummaryDTO]:
        """One summary per batch, reporting the worst status still present."""
        severity = Case(
            *[When(status=status, then=Value(rank)) for status, rank in STATUS_SEVERITY.items()],
            default=Value(0),
            output_field=IntegerField(),
        )
        rows = (
            _date_bounded(
                Order.objects.filter(
                    buyer_id=buyer_id,
                    batch__isnull=False,
                    status__in=SUBMITTED_STATES,
                ),
                "submitted_at",
                start_date,
                end_date,
            )
            .values("batch__label")
            .annotate(
                first_submitted_at=Min("submitted_at"),
                total=Coalesce(Sum("amount"), ZERO_AMOUNT),
                item_count=Count("id"),
                worst=Max(severity),
            )
            .order_by("-first_submitted_at", "batch__label")
        )
        return [
            BatchSummaryDTO(
                batch_number=row["batch__label"],
                submitted_at=row["first_submitted_at"],
                status=_SEVERITY_TO_STATUS.get(row["worst"], OrderStatus.PENDING),
                total_amount=row["total"],
                item_count=row["item_count"],
            )
            for row in rows
        ]

    def get_batch_lines(self, batch_number: str, buyer_id: Optional[int] = None) -> List[Order]:
        """Lines of one batch; a batch the buyer does not own is "not found"."""
        lines = self._order_repo.batch_lines(batch_number, buyer_id=buyer_id)
        if not lines:
            raise BatchNotFound(f"Batch {batch_number} not found.")
        return lines

    def get_batch_products(self, batch_number: str, buyer_id: Optional[int]) -> BuyAgainDTO:
        """Partition a past batch into still-available and gone products."""
        lines = self.get_batch_lines(batch_number, buyer_id=buyer_id)
        products = self._product_repo.get_many(line.product_id for line in lines)

        available: List[BuyAgainItemDTO] = []
        unavailable: List[BuyAgainItemDTO] = []
        for line in lines:
            product = products.get(line.product_id)
            item = {
                "order_id": line.id,
                "product_id": line.product_id,
                "product_name": line.product_name,
                "vendor_name": line.vendor_name,
                "quantity": line.quantity,
                "pricing_mode": line.pricing_mode,
                "unavailable_action": line.unavailable_action,
            }
            if product is not None and product.is_available:
                detail = ProductSummaryDTO.from_entity(product).model_dump(mode="json")
                available.append(BuyAgainItemDTO(**item, product=detail))
            else:
                unavailable.append(BuyAgainItemDTO(**item))

        logger.info(
            "order.buy_again_projected",
            batch_number=batch_number,
            available=len(available),
            unavailable=len(unavailable),
        )
        return BuyAgainDTO(batch_number=batch_number, available=available, unavailable=unavailable)

    # ------------------------------------------------------------------
    # Administrator scope
    # ------------------------------------------------------------------

    def list_ongoing(
        self,
        buyer_email: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> QuerySet:
        """Open cart rows, optionally for one buyer and a cart-date range.

        Raises:
            BuyerNotFound: ``buyer_email`` matches no user.
        """
        queryset = self._order_repo.list({"status": OrderStatus.IN_CART})
        if buyer_email:
            buyer = get_user_model().objects.filter(email__iexact=buyer_email.strip()).first()
            if buyer is None:
                raise BuyerNotFound(f"No buyer with email {buyer_email}.")
            queryset = queryset.filter(buyer_id=buyer.pk)
        queryset = _date_bounded(queryset, "created_at", start_date, end_date)
        return queryset.order_by("-created_at")

    def list_all(self) -> QuerySet:
        """Submitted lines; narrowed further by ``OrderFilter`` at the edge."""
        return self._order_repo.list({"status__in": SUBMITTED_STATES}).order_by(
            "-submitted_at", "-created_at"
        )

    def get_stats(self) -> OrderStatsDTO:
        submitted = Q(status__in=SUBMITTED_STATES)
        totals = Order.objects.aggregate(
            total_orders=Count("id", filter=submitted),
            total_batches=Count("batch", filter=submitted, distinct=True),
            in_cart_orders=Count("id", filter=Q(status=OrderStatus.IN_CART)),
            pending_orders=Count("id", filter=Q(status=OrderStatus.PENDING)),
            completed_orders=Count("id", filter=Q(status=OrderStatus.COMPLETED)),
            cancelled_orders=Count("id", filter=Q(status=OrderStatus.CANCELLED)),
            total_revenue=Coalesce(Sum("amount", filter=submitted), ZERO_AMOUNT),
            completed_revenue=Coalesce(
                Sum("amount", filter=Q(status=OrderStatus.COMPLETED)), ZERO_AMOUNT
            ),
        )
        return OrderStatsDTO(**totals)

    def buyer_overview(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        active_only: bool = False,
    ) -> BuyerOverviewDTO:
        """Per-buyer activity.

        The open cart count ignores the date range; batch counts and
        completed revenue only consider lines submitted inside it.
        """
        in_range = Q()
        if start_date:
            in_range &= Q(order_lines__submitted_at__date__gte=start_date)
        if end_date:
            in_range &= Q(order_lines__submitted_at__date__lte=end_date)

        def batches_in(status: str) -> Count:
            return Count(
                "order_lines__batch",
                filter=Q(order_lines__status=status) & in_range,
                distinct=True,
            )

        buyers = (
            get_user_model()
            .objects.filter(is_staff=False)
            .annotate(
                open_cart_items=Count(
                    "order_lines",
                    filter=Q(order_lines__status=OrderStatus.IN_CART),
                    distinct=True,
                ),
                pending_batches=batches_in(OrderStatus.PENDING),
                completed_batches=batches_in(OrderStatus.COMPLETED),
                cancelled_batches=batches_in(OrderStatus.CANCELLED),
                completed_revenue=Coalesce(
                    Sum(
                        "order_lines__amount",
                        filter=Q(order_lines__status=OrderStatus.COMPLETED) & in_range,
                    ),
                    ZERO_AMOUNT,
                ),
            )
            .order_by("email", "pk")
        )

        activity = [
            BuyerActivityDTO(
                buyer_id=buyer.pk,
                email=buyer.email,
                name=buyer.get_full_name() or buyer.get_username(),
                open_cart_items=buyer.open_cart_items,
                pending_batches=buyer.pending_batches,
                completed_batches=buyer.completed_batches,
                cancelled_batches=buyer.cancelled_batches,
                completed_revenue=buyer.completed_revenue,
            )
            for buyer in buyers
        ]
        active = [entry for entry in activity if entry.is_active]
        return BuyerOverviewDTO(
            start_date=start_date,
            end_date=end_date,
            total_buyers=len(activity),
            active_buyers=len(active),
            buyers=active if active_only else activity,
        )
