from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source="display_vendor_name", read_only=True)
    is_available = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "vendor_id",
            "vendor_name",
            "main_category",
            "sub_category",
            "wholesale_unit_price",
            "wholesale_case_price",
            "case_pack",
            "status",
            "is_available",
        ]
        read_only_fields = fields


class SimilarProductsQuerySerializer(serializers.Serializer):
    """Query string of ``GET /products/{id}/similar/``."""

    limit = serializers.IntegerField(required=False, min_value=1, max_value=50)
    same_vendor = serializers.BooleanField(required=False, default=False)
