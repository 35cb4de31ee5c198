"""Django ORM implementation of the Order repository.

Locking reads use ``select_for_update()`` without ``select_related`` (the
nullable joins cannot be locked on PostgreSQL).  They must run inside the
caller's ``transaction.atomic()`` block; the service layer owns that
boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.orders.constants import BATCH_LABEL_MAX_RETRIES, OrderStatus
from modules.orders.exceptions import BatchLabelExhausted
from modules.orders.models import Order, OrderBatch, OrderSnapshot, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_DETAIL_RELATIONS = ("batch", "product", "vendor", "replacement_product")


class OrderDjangoRepository(IOrderRepository):
    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[Order]:
        """Order line with eager-loaded batch, catalog refs and audit rows."""
        try:
            return (
                Order.objects.select_related(*_DETAIL_RELATIONS)
                .prefetch_related("snapshots", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: Any) -> Optional[Order]:
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> Any:
        queryset = Order.objects.select_related("batch", "product", "vendor")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def batch_lines(self, batch_number: str, buyer_id: Optional[int] = None) -> List[Order]:
        queryset = Order.objects.select_related(*_DETAIL_RELATIONS).filter(
            batch__label=batch_number
        )
        if buyer_id is not None:
            queryset = queryset.filter(buyer_id=buyer_id)
        return list(queryset.order_by("created_at", "id"))

    def get_cart_item(
        self, buyer_id: int, id: Any, for_update: bool = False
    ) -> Optional[Order]:
        queryset = Order.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.filter(
                id=id, buyer_id=buyer_id, status=OrderStatus.IN_CART
            ).first()
        except (ValueError, ValidationError):
            return None

    def find_cart_item_for_product(
        self, buyer_id: int, product_id: UUID
    ) -> Optional[Order]:
        return (
            Order.objects.select_for_update()
            .filter(buyer_id=buyer_id, product_id=product_id, status=OrderStatus.IN_CART)
            .order_by("created_at")
            .first()
        )

    # ------------------------------------------------------------------
    # Locked reads / conditional writes
    # ------------------------------------------------------------------

    def lock_cart_rows(self, buyer_id: int, ids: Sequence[UUID]) -> List[Order]:
        """Lock in primary-key order so overlapping submissions cannot deadlock."""
        if not ids:
            return []
        return list(
            Order.objects.select_for_update()
            .filter(id__in=list(ids), buyer_id=buyer_id, status=OrderStatus.IN_CART)
            .order_by("id")
        )

    def claim_cart_row(self, order: Order, changes: Dict[str, Any]) -> bool:
        changes = {**changes, "updated_at": timezone.now()}
        updated = Order.objects.filter(
            id=order.id, status=OrderStatus.IN_CART
        ).update(**changes)
        if not updated:
            logger.warning("order.cart_row_already_claimed", order_id=str(order.id))
            return False
        for field, value in changes.items():
            setattr(order, field, value)
        return True

    def lock_batch_lines(self, batch_number: str) -> List[Order]:
        return list(
            Order.objects.select_for_update()
            .filter(batch__label=batch_number)
            .order_by("created_at", "id")
        )

    # ------------------------------------------------------------------
    # Create / save
    # ------------------------------------------------------------------

    def create_line(self, data: Dict[str, Any]) -> Order:
        order = Order(**data)
        order.save()
        logger.info("order.line_created", order_id=str(order.id), status=order.status)
        return order

    def create_batch(
        self,
        label_factory: Callable[[int], str],
        buyer_id: Optional[int],
        buyer_email: str,
        submitted_at: datetime,
    ) -> OrderBatch:
        """Create a batch with a unique label.

        An existing label is skipped up front; a concurrent insert of the
        same label surfaces as ``IntegrityError`` inside a savepoint and is
        retried as well.
        """
        for attempt in range(BATCH_LABEL_MAX_RETRIES):
            label = label_factory(attempt)
            if OrderBatch.objects.filter(label=label).exists():
                logger.warning("order.batch_label_collision", label=label, attempt=attempt)
                continue
            try:
                with transaction.atomic():
                    batch = OrderBatch.objects.create(
                        label=label,
                        buyer_id=buyer_id,
                        buyer_email=buyer_email,
                        submitted_at=submitted_at,
                    )
            except IntegrityError:
                logger.warning("order.batch_label_race", label=label, attempt=attempt)
                continue
            logger.info("order.batch_created", batch_number=label, batch_id=str(batch.id))
            return batch

        raise BatchLabelExhausted(
            f"Failed to generate a unique batch label after "
            f"{BATCH_LABEL_MAX_RETRIES} attempts"
        )

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        entity.save()
        logger.info("order.saved", order_id=str(entity.id))
        return entity

    def has_audit_trail(self, order_id: UUID) -> bool:
        return OrderSnapshot.objects.filter(order_id=order_id).exists()

    def delete_line(self, order: Order) -> None:
        order.delete()

    def delete_cart(self, buyer_id: int) -> int:
        queryset = Order.objects.filter(buyer_id=buyer_id, status=OrderStatus.IN_CART)
        queryset = queryset.filter(batch__isnull=True, snapshots__isnull=True)
        return queryset.delete()[1].get("orders.Order", 0)

    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        old_status: Optional[str],
        notes: str = "",
        user: Any = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            notes=notes or "",
            user=user if getattr(user, "pk", None) else None,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
        )
        return history
