"""Integration tests for the Celery app and the notification tasks."""

from decimal import Decimal

import pytest
from django.core import mail

pytestmark = pytest.mark.integration

LINES = [
    {
        "order_id": "0190a0b0-0000-7000-8000-000000000001",
        "product_name": "Widget A",
        "vendor_name": "Acme Supply",
        "quantity": 3,
        "pricing_mode": "case",
        "amount": "30.00",
        "status": "pending",
    }
]


class TestCeleryConfig:
    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "wholesale"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "wholesale"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_notification_tasks_registered(self):
        from config.celery import app

        app.loader.import_default_modules()
        assert {
            "orders.send_order_confirmation_email",
            "orders.send_support_notification_email",
            "orders.send_status_update_email",
        } <= set(app.tasks)


class TestNotificationTasks:
    def test_order_confirmation(self):
        from modules.orders.tasks import send_order_confirmation_email

        result = send_order_confirmation_email.delay("jane@example.com", "Jane - 03/01/2024 #0001", LINES)

        assert result.successful()
        assert result.result == 1
        (message,) = mail.outbox
        assert message.to == ["jane@example.com"]
        assert "Jane - 03/01/2024 #0001" in message.subject
        assert "Widget A (Acme Supply): 3 x case = 30.00" in message.body

    def test_support_notification(self):
        from modules.orders.tasks import send_support_notification_email

        send_support_notification_email.delay("Jane", "Jane - 03/01/2024 #0001", 2, "34.50")

        (message,) = mail.outbox
        assert message.to == ["support@example.com"]
        assert "Total: 34.50" in message.body

    def test_support_notification_without_address(self, settings):
        from modules.orders.tasks import send_support_notification_email

        settings.ORDERS_SUPPORT_EMAIL = ""
        assert send_support_notification_email("Jane", "x", 1, "1.00") == 0
        assert mail.outbox == []

    def test_status_update_with_notes(self):
        from modules.orders.tasks import send_status_update_email

        send_status_update_email.delay(
            "jane@example.com", "Jane - 03/01/2024 #0001", LINES, "completed", "Shipped"
        )

        (message,) = mail.outbox
        assert message.subject == "Order Jane - 03/01/2024 #0001 status: completed"
        assert "Notes: Shipped" in message.body

    def test_missing_recipient(self):
        from modules.orders.tasks import send_status_update_email

        assert send_status_update_email("", None, LINES, "completed") == 0
        assert mail.outbox == []


class TestSubmissionSendsMail:
    def test_submit_through_api_sends_two_messages(self, buyer_client, make_product):
        product = make_product(name="Widget A", wholesale_case_price=Decimal("10.00"))
        item = buyer_client.post(
            "/api/v1/cart/", {"productId": str(product.id), "quantity": 3}, format="json"
        ).json()

        response = buyer_client.post(
            "/api/v1/orders/submit/", {"cartItemIds": [item["id"]]}, format="json"
        )

        assert response.status_code == 201
        assert sorted(m.to[0] for m in mail.outbox) == ["jane@example.com", "support@example.com"]
