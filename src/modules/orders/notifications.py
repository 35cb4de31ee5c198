"""Notification sink used by the order services.

The services only know ``INotificationSink``; the default implementation
enqueues Celery tasks (``modules.orders.tasks``) that deliver plain-text
mail.  Dispatch is fire-and-forget: callers wrap every call in a guard and
never let a failure reach the HTTP response.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence

from modules.orders.models import Order

LinePayload = Dict[str, Any]


class INotificationSink(Protocol):
    def send_order_confirmation(
        self, buyer_email: str, batch_number: str, lines: List[LinePayload]
    ) -> None: ...

    def send_support_notification(
        self,
        buyer_name: str,
        batch_number: str,
        item_count: int,
        total_amount: Decimal,
    ) -> None: ...

    def send_status_update(
        self,
        buyer_email: str,
        batch_number: Optional[str],
        lines: List[LinePayload],
        new_status: str,
        notes: Optional[str],
    ) -> None: ...


def line_payloads(orders: Sequence[Order]) -> List[LinePayload]:
    """JSON-safe summary of order lines for task arguments."""
    return [
        {
            "order_id": str(order.id),
            "product_name": order.product_name,
            "vendor_name": order.vendor_name,
            "quantity": order.quantity,
            "pricing_mode": order.pricing_mode,
            "amount": str(order.amount),
            "status": order.status,
        }
        for order in orders
    ]


class CeleryNotificationSink:
    def send_order_confirmation(self, buyer_email, batch_number, lines):
        from modules.orders.tasks import send_order_confirmation_email

        send_order_confirmation_email.delay(buyer_email, batch_number, lines)

    def send_support_notification(self, buyer_name, batch_number, item_count, total_amount):
        from modules.orders.tasks import send_support_notification_email

        send_support_notification_email.delay(
            buyer_name, batch_number, item_count, str(total_amount)
        )

    def send_status_update(self, buyer_email, batch_number, lines, new_status, notes):
        from modules.orders.tasks import send_status_update_email

        send_status_update_email.delay(buyer_email, batch_number, lines, new_status, notes)


class NullNotificationSink:
    """Discards every notification (seeding, scripted back-office runs)."""

    def send_order_confirmation(self, buyer_email, batch_number, lines):
        return None

    def send_support_notification(self, buyer_name, batch_number, item_count, total_amount):
        return None

    def send_status_update(self, buyer_email, batch_number, lines, new_status, notes):
        return None
