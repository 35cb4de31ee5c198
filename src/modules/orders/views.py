"""Order API views.

Exposes ``OrderService``, ``CartService`` and ``OrderQueryService`` via
HTTP using DRF ViewSets.  Domain exceptions are caught and translated into
``{"detail": ..., "code": ...}`` responses; the views never swallow generic
exceptions (those reach ``api_exception_handler``).
"""

from __future__ import annotations

from typing import Any, Dict

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet, ViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import (
    AddCartItemDTO,
    LegacyOrderItemDTO,
    SubmitBatchDTO,
    UpdateCartItemDTO,
    UpdateOrderLineDTO,
)
from modules.orders.exceptions import (
    BatchLabelExhausted,
    BatchNotFound,
    BuyerNotFound,
    CartItemAudited,
    CartItemNotFound,
    InvalidOrderStatus,
    MissingProductReference,
    NoClaimableCartItems,
    OrderError,
    OrderNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.queries import OrderQueryService
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CartItemCreateSerializer,
    CartItemUpdateSerializer,
    DateRangeQuerySerializer,
    OrderDetailSerializer,
    OrderLineSerializer,
    OrderLineUpdateSerializer,
    StatusUpdateSerializer,
    SubmitBatchSerializer,
)
from modules.orders.services import CartService, OrderService
from modules.products.exceptions import ProductNotFound
from modules.products.repositories.django_repository import ProductDjangoRepository

ERROR_STATUS: Dict[type, int] = {
    OrderNotFound: status.HTTP_404_NOT_FOUND,
    BatchNotFound: status.HTTP_404_NOT_FOUND,
    BuyerNotFound: status.HTTP_404_NOT_FOUND,
    CartItemNotFound: status.HTTP_404_NOT_FOUND,
    InvalidOrderStatus: status.HTTP_400_BAD_REQUEST,
    NoClaimableCartItems: status.HTTP_409_CONFLICT,
    CartItemAudited: status.HTTP_409_CONFLICT,
    MissingProductReference: status.HTTP_500_INTERNAL_SERVER_ERROR,
    BatchLabelExhausted: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def domain_error_response(exc: OrderError | ProductNotFound) -> Response:
    if isinstance(exc, ProductNotFound):
        http_status = status.HTTP_404_NOT_FOUND
    else:
        http_status = next(
            (ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS),
            status.HTTP_400_BAD_REQUEST,
        )
    return Response({"detail": str(exc), "code": exc.code}, status=http_status)


def dto_error_response(exc: DTOValidationError) -> Response:
    messages = [error["msg"].removeprefix("Value error, ") for error in exc.errors()]
    return Response(
        {"detail": " ".join(messages), "code": "invalid"},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _is_admin(request: Request) -> bool:
    return bool(request.user and request.user.is_staff)


def _date_range(request: Request) -> Dict[str, Any]:
    params = DateRangeQuerySerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    return params.validated_data


class _ServicesMixin:
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repo = OrderDjangoRepository()
        product_repo = ProductDjangoRepository()
        self._service = OrderService(
            order_repository=order_repo,
            product_repository=product_repo,
        )
        self._cart = CartService(
            order_repository=order_repo,
            product_repository=product_repo,
        )
        self._queries = OrderQueryService(
            order_repository=order_repo,
            product_repository=product_repo,
        )


class OrderViewSet(_ServicesMixin, GenericViewSet):
    """ViewSet for order lines.

    Does **not** extend ``ModelViewSet``: all ORM access goes through the
    service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderLineSerializer
    lookup_value_regex = "[0-9a-fA-F-]{32,36}"
    filterset_class = OrderFilter
    ordering_fields = ["submitted_at", "created_at", "amount", "status"]
    ordering = ["-submitted_at", "-created_at"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    admin_actions = {
        "partial_update",
        "set_status",
        "ongoing",
        "all_orders",
        "stats",
        "buyer_overview",
    }

    def get_permissions(self):
        if self.action in self.admin_actions:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        throttle_scope: str | None
        if self.action == "submit":
            throttle_scope = "order_submission"
        elif self.action in {"my_orders", "my_batches", "retrieve", "all_orders"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._queries.list_all()

    def _paginated(self, request: Request, queryset) -> Response:
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = OrderLineSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @action(detail=False, methods=["post"])
    def submit(self, request: Request) -> Response:
        """POST /api/v1/orders/submit/"""
        payload = SubmitBatchSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        user = request.user
        try:
            dto = SubmitBatchDTO(
                buyer_id=user.pk,
                buyer_email=user.email or "",
                buyer_name=user.get_full_name() or user.first_name,
                cart_item_ids=data.get("cart_item_ids") or None,
                items=[LegacyOrderItemDTO(**item) for item in data.get("items") or []]
                or None,
            )
        except DTOValidationError as exc:
            return dto_error_response(exc)

        try:
            result = self._service.submit_batch(dto)
        except OrderError as exc:
            return domain_error_response(exc)

        return Response(
            {
                "batchNumber": result.batch_number,
                "totalAmount": str(result.total_amount),
                "orders": OrderLineSerializer(result.orders, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # Buyer listings
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"], url_path="my-orders")
    def my_orders(self, request: Request) -> Response:
        """GET /api/v1/orders/my-orders/?start_date=&end_date="""
        params = _date_range(request)
        queryset = self._queries.list_buyer_orders(
            request.user.pk,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
        )
        return self._paginated(request, queryset)

    @action(detail=False, methods=["get"], url_path="my-batches")
    def my_batches(self, request: Request) -> Response:
        """GET /api/v1/orders/my-batches/"""
        params = _date_range(request)
        batches = self._queries.list_buyer_batches(
            request.user.pk,
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
        )
        return Response([batch.model_dump(mode="json") for batch in batches])

    # ------------------------------------------------------------------
    # Single line
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/ (buyers only see their own lines)."""
        order = OrderDjangoRepository().get_by_id(pk)
        if order is None or (not _is_admin(request) and order.buyer_id != request.user.pk):
            return Response(
                {"detail": "Order not found.", "code": OrderNotFound.code},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(OrderDetailSerializer(order).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/ (administrative correction)."""
        payload = OrderLineUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            order = self._service.update_order_line(
                pk, UpdateOrderLineDTO(**payload.validated_data), user=request.user
            )
        except DTOValidationError as exc:
            return dto_error_response(exc)
        except OrderError as exc:
            return domain_error_response(exc)
        return Response(OrderDetailSerializer(order).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/status/"""
        payload = StatusUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            order = self._service.set_order_status(
                pk,
                payload.validated_data["status"],
                notes=payload.validated_data.get("notes"),
                user=request.user,
            )
        except OrderError as exc:
            return domain_error_response(exc)
        return Response(OrderDetailSerializer(order).data)

    # ------------------------------------------------------------------
    # Administrator listings
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"])
    def ongoing(self, request: Request) -> Response:
        """GET /api/v1/orders/ongoing/?buyer_email=&start_date=&end_date="""
        params = _date_range(request)
        try:
            queryset = self._queries.list_ongoing(
                buyer_email=params.get("buyer_email"),
                start_date=params.get("start_date"),
                end_date=params.get("end_date"),
            )
        except OrderError as exc:
            return domain_error_response(exc)
        return self._paginated(request, queryset)

    @action(detail=False, methods=["get"], url_path="all")
    def all_orders(self, request: Request) -> Response:
        """GET /api/v1/orders/all/

        Filtering (vendor, status, buyer, date range) is handled by
        ``OrderFilter``; ordering by ``OrderingFilter``.
        """
        queryset = self.filter_queryset(self.get_queryset())
        return self._paginated(request, queryset)

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        """GET /api/v1/orders/stats/"""
        return Response(self._queries.get_stats().model_dump(mode="json"))

    @action(detail=False, methods=["get"], url_path="buyer-overview")
    def buyer_overview(self, request: Request) -> Response:
        """GET /api/v1/orders/buyer-overview/?start_date=&end_date=&active_only="""
        params = _date_range(request)
        overview = self._queries.buyer_overview(
            start_date=params.get("start_date"),
            end_date=params.get("end_date"),
            active_only=params.get("active_only", False),
        )
        return Response(overview.model_dump(mode="json"))


class BatchViewSet(_ServicesMixin, ViewSet):
    """Batch-addressed routes; ``batch_number`` is the batch label.

    Labels contain ``/``, ``#`` and spaces, so clients must percent-encode
    them; the URL patterns in ``urls.py`` accept any characters.
    """

    def get_permissions(self):
        if self.action == "set_status":
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def retrieve(self, request: Request, batch_number: str) -> Response:
        """GET /api/v1/orders/batch/{batch_number}/"""
        buyer_id = None if _is_admin(request) else request.user.pk
        try:
            lines = self._queries.get_batch_lines(batch_number, buyer_id=buyer_id)
        except OrderError as exc:
            return domain_error_response(exc)
        return Response(
            {
                "batchNumber": batch_number,
                "orders": OrderLineSerializer(lines, many=True).data,
            }
        )

    def products(self, request: Request, batch_number: str) -> Response:
        """GET /api/v1/orders/batch/{batch_number}/products/ (buy again)"""
        buyer_id = None if _is_admin(request) else request.user.pk
        try:
            projection = self._queries.get_batch_products(batch_number, buyer_id=buyer_id)
        except OrderError as exc:
            return domain_error_response(exc)
        return Response(projection.model_dump(mode="json"))

    def set_status(self, request: Request, batch_number: str) -> Response:
        """PATCH /api/v1/orders/batch/{batch_number}/status/"""
        payload = StatusUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            lines = self._service.set_batch_status(
                batch_number,
                payload.validated_data["status"],
                notes=payload.validated_data.get("notes"),
                user=request.user,
            )
        except OrderError as exc:
            return domain_error_response(exc)
        return Response(
            {
                "batchNumber": batch_number,
                "orders": OrderLineSerializer(lines, many=True).data,
            }
        )


class CartViewSet(_ServicesMixin, ViewSet):
    """The authenticated buyer's cart (``in_cart`` order lines)."""

    permission_classes = [IsAuthenticated]

    def list(self, request: Request) -> Response:
        """GET /api/v1/cart/"""
        items = self._cart.list_items(request.user.pk)
        return Response(OrderLineSerializer(items, many=True).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/cart/ (merges into an existing row for the product)."""
        payload = CartItemCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            item = self._cart.add_item(
                AddCartItemDTO(
                    buyer_id=request.user.pk,
                    buyer_email=request.user.email or "",
                    **payload.validated_data,
                )
            )
        except DTOValidationError as exc:
            return dto_error_response(exc)
        except (OrderError, ProductNotFound) as exc:
            return domain_error_response(exc)
        return Response(OrderLineSerializer(item).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/cart/{pk}/"""
        payload = CartItemUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            item = self._cart.update_item(
                request.user.pk, pk, UpdateCartItemDTO(**payload.validated_data)
            )
        except DTOValidationError as exc:
            return dto_error_response(exc)
        except OrderError as exc:
            return domain_error_response(exc)
        return Response(OrderLineSerializer(item).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/cart/{pk}/"""
        try:
            self._cart.remove_item(request.user.pk, pk)
        except OrderError as exc:
            return domain_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def clear(self, request: Request) -> Response:
        """DELETE /api/v1/cart/"""
        removed = self._cart.clear(request.user.pk)
        return Response({"removed": removed})
