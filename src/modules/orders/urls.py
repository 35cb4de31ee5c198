"""Order URL configuration.

Batch routes come first and use ``re_path``: batch labels may contain
``/``, so ``batch_number`` matches greedily up to the trailing segment.
"""

from __future__ import annotations

from django.urls import path, re_path
from rest_framework.routers import DefaultRouter

from modules.orders.views import BatchViewSet, CartViewSet, OrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

batch_status = BatchViewSet.as_view({"patch": "set_status"})
batch_products = BatchViewSet.as_view({"get": "products"})
batch_detail = BatchViewSet.as_view({"get": "retrieve"})

cart_list = CartViewSet.as_view({"get": "list", "post": "create", "delete": "clear"})
cart_detail = CartViewSet.as_view({"patch": "partial_update", "delete": "destroy"})

urlpatterns = [
    re_path(
        r"^orders/batch/(?P<batch_number>.+)/status/$",
        batch_status,
        name="order-batch-status",
    ),
    re_path(
        r"^orders/batch/(?P<batch_number>.+)/products/$",
        batch_products,
        name="order-batch-products",
    ),
    re_path(
        r"^orders/batch/(?P<batch_number>.+)/$",
        batch_detail,
        name="order-batch-detail",
    ),
    path("cart/", cart_list, name="cart-list"),
    path("cart/<uuid:pk>/", cart_detail, name="cart-detail"),
    *router.urls,
]
