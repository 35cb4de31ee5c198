"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.

Older clients send camelCase keys (``cartItemIds``, ``startDate``); the
input serializers accept both spellings.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import PricingMode
from modules.orders.models import Order, OrderSnapshot, OrderStatusHistory


class _CamelCaseAliasMixin:
    """Copies camelCase aliases onto their snake_case field names."""

    aliases: dict = {}

    def to_internal_value(self, data):
        if hasattr(data, "dict"):
            data = data.dict()
        data = dict(data)
        for alias, field_name in self.aliases.items():
            if alias in data and field_name not in data:
                data[field_name] = data.pop(alias)
        return super().to_internal_value(data)


# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class SubmitItemSerializer(_CamelCaseAliasMixin, serializers.Serializer):
    """Legacy item descriptor; ``product_id`` is checked by the service."""

    aliases = {
        "productId": "product_id",
        "productName": "product_name",
        "vendorName": "vendor_name",
        "pricingMode": "pricing_mode",
        "unitPrice": "unit_price",
        "casePrice": "case_price",
        "unavailableAction": "unavailable_action",
        "replacementProductId": "replacement_product_id",
    }

    product_id = serializers.UUIDField(required=False, allow_null=True)
    product_name = serializers.CharField(required=False, default="", allow_blank=True)
    vendor_name = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    pricing_mode = serializers.ChoiceField(
        choices=PricingMode.choices, required=False, default=PricingMode.CASE
    )
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    case_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    unavailable_action = serializers.CharField(
        required=False, allow_null=True, allow_blank=True
    )
    replacement_product_id = serializers.UUIDField(required=False, allow_null=True)


class SubmitBatchSerializer(_CamelCaseAliasMixin, serializers.Serializer):
    """Either ``cartItemIds`` or ``items``, never both and never empty."""

    aliases = {"cartItemIds": "cart_item_ids"}

    cart_item_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, allow_empty=True
    )
    items = SubmitItemSerializer(many=True, required=False)

    def validate(self, attrs):
        cart_item_ids = attrs.get("cart_item_ids") or []
        items = attrs.get("items") or []
        if cart_item_ids and items:
            raise serializers.ValidationError(
                "Submit either cartItemIds or items, not both.", code="ambiguous_selection"
            )
        if not cart_item_ids and not items:
            raise serializers.ValidationError(
                "Submission must contain at least one item.", code="empty_submission"
            )
        return attrs


class StatusUpdateSerializer(serializers.Serializer):
    """Status membership is checked by the service (stable error code)."""

    status = serializers.CharField()
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)


class OrderLineUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, required=False)
    pricing_mode = serializers.ChoiceField(choices=PricingMode.choices, required=False)
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    case_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    unavailable_action = serializers.CharField(required=False)
    replacement_product_id = serializers.UUIDField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class CartItemCreateSerializer(_CamelCaseAliasMixin, serializers.Serializer):
    aliases = {
        "productId": "product_id",
        "pricingMode": "pricing_mode",
        "unavailableAction": "unavailable_action",
        "replacementProductId": "replacement_product_id",
    }

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, required=False, default=1)
    pricing_mode = serializers.ChoiceField(
        choices=PricingMode.choices, required=False, default=PricingMode.CASE
    )
    unavailable_action = serializers.CharField(required=False, allow_null=True)
    replacement_product_id = serializers.UUIDField(required=False, allow_null=True)


class CartItemUpdateSerializer(_CamelCaseAliasMixin, serializers.Serializer):
    aliases = {
        "pricingMode": "pricing_mode",
        "unavailableAction": "unavailable_action",
        "replacementProductId": "replacement_product_id",
    }

    quantity = serializers.IntegerField(min_value=1, required=False)
    pricing_mode = serializers.ChoiceField(choices=PricingMode.choices, required=False)
    unavailable_action = serializers.CharField(required=False)
    replacement_product_id = serializers.UUIDField(required=False)


class DateRangeQuerySerializer(_CamelCaseAliasMixin, serializers.Serializer):
    aliases = {
        "startDate": "start_date",
        "endDate": "end_date",
        "buyerEmail": "buyer_email",
        "activeOnly": "active_only",
    }

    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    buyer_email = serializers.EmailField(required=False)
    active_only = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError(
                {"start_date": "start_date must not be after end_date."}
            )
        return attrs


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderSnapshotSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderSnapshot
        fields = [
            "id",
            "snapshot_type",
            "batch_label",
            "status",
            "product_ref",
            "product_name",
            "vendor_ref",
            "vendor_name",
            "quantity",
            "amount",
            "pricing_mode",
            "unit_price",
            "case_price",
            "unavailable_action",
            "replacement_product_ref",
            "replacement_product_name",
            "replacement_vendor_name",
            "created_at",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "user_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderLineSerializer(serializers.ModelSerializer):
    """Flat order line (no nested relations)."""

    batch_number = serializers.CharField(read_only=True, allow_null=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "batch_number",
            "product_id",
            "product_name",
            "vendor_id",
            "vendor_name",
            "quantity",
            "amount",
            "pricing_mode",
            "unit_price",
            "case_price",
            "status",
            "buyer_id",
            "buyer_email",
            "notes",
            "unavailable_action",
            "replacement_product_id",
            "replacement_product_name",
            "replacement_vendor_name",
            "submitted_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderLineSerializer):
    """Order line with its snapshots and status history."""

    snapshots = OrderSnapshotSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta(OrderLineSerializer.Meta):
        fields = [*OrderLineSerializer.Meta.fields, "snapshots", "status_history"]
        read_only_fields = fields
