"""Append-only audit copies of order lines."""

from __future__ import annotations

from typing import Optional

import structlog

from modules.orders.constants import SnapshotType
from modules.orders.models import Order, OrderSnapshot

logger = structlog.get_logger(__name__)


class SnapshotRecorder:
    """Writes an ``OrderSnapshot`` mirroring the line's current state.

    There is deliberately no update path: every call inserts a new row.
    """

    def record(
        self,
        order: Order,
        snapshot_type: SnapshotType | str,
        batch_label: Optional[str] = None,
    ) -> OrderSnapshot:
        if batch_label is None:
            batch_label = order.batch_number or ""
        snapshot = OrderSnapshot(
            order=order,
            snapshot_type=snapshot_type,
            batch_label=batch_label,
            status=order.status,
            product_ref=order.product_id,
            product_name=order.product_name,
            vendor_ref=order.vendor_id,
            vendor_name=order.vendor_name,
            quantity=order.quantity,
            amount=order.amount,
            pricing_mode=order.pricing_mode,
            unit_price=order.unit_price,
            case_price=order.case_price,
            unavailable_action=order.unavailable_action,
            replacement_product_ref=order.replacement_product_id,
            replacement_product_name=order.replacement_product_name,
            replacement_vendor_name=order.replacement_vendor_name,
        )
        snapshot.save()
        logger.info(
            "order.snapshot_recorded",
            order_id=str(order.id),
            snapshot_type=str(snapshot_type),
            batch_label=batch_label,
        )
        return snapshot
