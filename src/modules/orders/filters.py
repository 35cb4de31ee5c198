import django_filters

from modules.orders.constants import OrderStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    """Allow-list for the administrator's order listing."""

    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    vendor = django_filters.CharFilter(field_name="vendor_name", lookup_expr="iexact")
    vendor_id = django_filters.UUIDFilter(field_name="vendor_id")
    buyer = django_filters.CharFilter(field_name="buyer_email", lookup_expr="iexact")
    batch_number = django_filters.CharFilter(field_name="batch__label")
    start_date = django_filters.DateFilter(field_name="submitted_at__date", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="submitted_at__date", lookup_expr="lte")
    startDate = django_filters.DateFilter(field_name="submitted_at__date", lookup_expr="gte")
    endDate = django_filters.DateFilter(field_name="submitted_at__date", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "vendor",
            "vendor_id",
            "buyer",
            "batch_number",
            "start_date",
            "end_date",
            "startDate",
            "endDate",
        ]
