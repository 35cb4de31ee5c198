"""Asynchronous order notifications.

Plain-text mail through ``django.core.mail``; the buyer-facing messages go to
the batch owner, the support message to ``ORDERS_SUPPORT_EMAIL``.
"""

from typing import Any, Dict, List, Optional

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = structlog.get_logger(__name__)


def _format_lines(lines: List[Dict[str, Any]]) -> str:
    return "\n".join(
        f"- {line['product_name']} ({line.get('vendor_name') or 'no vendor'}): "
        f"{line['quantity']} x {line['pricing_mode']} = {line['amount']}"
        for line in lines
    )


@shared_task(name="orders.send_order_confirmation_email")
def send_order_confirmation_email(
    buyer_email: str, batch_number: str, lines: List[Dict[str, Any]]
) -> int:
    if not buyer_email:
        logger.warning("notification.no_recipient", batch_number=batch_number)
        return 0
    body = (
        f"Thank you for your order.\n\n"
        f"Batch: {batch_number}\n"
        f"Items:\n{_format_lines(lines)}\n"
    )
    sent = send_mail(
        subject=f"Order confirmation {batch_number}",
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[buyer_email],
    )
    logger.info("notification.order_confirmation_sent", batch_number=batch_number)
    return sent


@shared_task(name="orders.send_support_notification_email")
def send_support_notification_email(
    buyer_name: str, batch_number: str, item_count: int, total_amount: str
) -> int:
    support_email = settings.ORDERS_SUPPORT_EMAIL
    if not support_email:
        logger.warning("notification.support_email_not_configured")
        return 0
    body = (
        f"New order batch submitted.\n\n"
        f"Buyer: {buyer_name}\n"
        f"Batch: {batch_number}\n"
        f"Items: {item_count}\n"
        f"Total: {total_amount}\n"
    )
    sent = send_mail(
        subject=f"New order {batch_number}",
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[support_email],
    )
    logger.info("notification.support_sent", batch_number=batch_number)
    return sent


@shared_task(name="orders.send_status_update_email")
def send_status_update_email(
    buyer_email: str,
    batch_number: Optional[str],
    lines: List[Dict[str, Any]],
    new_status: str,
    notes: Optional[str] = None,
) -> int:
    if not buyer_email:
        logger.warning("notification.no_recipient", batch_number=batch_number)
        return 0
    body = f"Your order {batch_number or ''} is now {new_status}.\n\n{_format_lines(lines)}\n"
    if notes:
        body += f"\nNotes: {notes}\n"
    sent = send_mail(
        subject=f"Order {batch_number or ''} status: {new_status}".replace("  ", " "),
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[buyer_email],
    )
    logger.info(
        "notification.status_update_sent",
        batch_number=batch_number,
        new_status=new_status,
    )
    return sent
