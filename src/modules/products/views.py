"""Read-only catalog endpoints needed by the ordering flow."""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.products.exceptions import ProductNotFound
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.serializers import (
    ProductSerializer,
    SimilarProductsQuerySerializer,
)
from modules.products.services import ReplacementResolver


class ProductViewSet(GenericViewSet):
    """Product detail and replacement candidates.

    Catalog search and listing are served elsewhere; the ordering UI only
    needs a single product and its substitutes.
    """

    queryset = Product.objects.alive()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._repo = ProductDjangoRepository()
        self._resolver = ReplacementResolver(product_repository=self._repo)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        product = self._repo.get_by_id(pk)
        if product is None:
            return Response(
                {"detail": "Product not found.", "code": ProductNotFound.code},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(ProductSerializer(product).data)

    @action(detail=True, methods=["get"])
    def similar(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/similar/?limit=&same_vendor="""
        params = SimilarProductsQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        try:
            result = self._resolver.find_similar(
                pk,
                limit=params.validated_data.get("limit"),
                same_vendor_only=params.validated_data["same_vendor"],
            )
        except ProductNotFound as exc:
            return Response(
                {"detail": str(exc), "code": exc.code},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(result.model_dump(mode="json"))
