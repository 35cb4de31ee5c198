"""Order batch, order line, snapshot and status history models.

Business rules implemented:
- An order line is the atomic unit: one row per product per batch.  While
  ``in_cart`` it has no batch; once submitted it always has one.
- Product, vendor and buyer names are copied onto the line when it is
  written, so past orders stay readable after the catalog changes.  This is
  also what lets "buy again" spot products that disappeared.
- ``amount`` is ``quantity x price`` for the chosen pricing mode, rounded to cents.
- ``OrderBatch.label`` is unique; the UUIDv7 ``id`` is the surrogate key and
  the label is the human-facing "batch number".
- Snapshots and status history are append-only audit records.
"""

from __future__ import annotations

from typing import Any

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    BATCH_LABEL_MAX_LENGTH,
    VALID_TRANSITIONS,
    OrderStatus,
    PricingMode,
    SnapshotType,
    UnavailableAction,
)
from modules.orders.exceptions import SnapshotImmutable
from modules.orders.pricing import compute_amount


class OrderBatch(BaseModel):
    """A set of order lines submitted together."""

    label = models.CharField(max_length=BATCH_LABEL_MAX_LENGTH, unique=True)
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_batches",
    )
    buyer_email = models.EmailField(max_length=254, blank=True, default="")
    submitted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "order_batches"
        ordering = ["-submitted_at"]

    def __str__(self) -> str:
        return self.label


class Order(BaseModel):
    """A single order line (cart row before submission)."""

    batch = models.ForeignKey(
        "orders.OrderBatch",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_lines",
    )
    product_name = models.CharField(max_length=255)
    vendor = models.ForeignKey(
        "products.Vendor",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_lines",
    )
    vendor_name = models.CharField(max_length=255, blank=True, default="")
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    pricing_mode = models.CharField(
        max_length=10,
        choices=PricingMode.choices,
        default=PricingMode.CASE,
    )
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    case_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.IN_CART,
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_lines",
    )
    buyer_email = models.EmailField(max_length=254, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    unavailable_action = models.CharField(  # noqa: DJ01
        max_length=30,
        choices=UnavailableAction.choices,
        null=True,
        blank=True,
    )
    replacement_product = models.ForeignKey(
        "products.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    replacement_product_name = models.CharField(max_length=255, blank=True, default="")
    replacement_vendor_name = models.CharField(max_length=255, blank=True, default="")
    submitted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-submitted_at", "-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["buyer", "status"], name="orders_buyer_status_idx"),
            models.Index(fields=["-submitted_at"], name="orders_submitted_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="orders_quantity_positive",
            ),
        ]

    @property
    def batch_number(self) -> str | None:
        return self.batch.label if self.batch_id else None

    def can_transition_to(self, new_status: str) -> bool:
        if new_status == self.status:
            return True
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def recompute_amount(self) -> None:
        self.amount = compute_amount(
            self.quantity, self.pricing_mode, self.unit_price, self.case_price
        )

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} ({self.status})"


class OrderSnapshotQuerySet(models.QuerySet):
    """Bulk writes would bypass the per-instance guards below."""

    def update(self, **kwargs: Any) -> int:
        raise SnapshotImmutable("Snapshots cannot be modified.")

    def delete(self) -> tuple[int, dict[str, int]]:
        raise SnapshotImmutable("Snapshots cannot be deleted.")


class OrderSnapshot(BaseModel):
    """Point-in-time copy of an order line.

    Written with ``snapshot_type=original`` when the line is submitted and
    ``modified`` after each administrative edit.  Instances refuse to be
    saved twice or deleted, and the queryset refuses bulk updates and
    deletes.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="snapshots",
    )
    snapshot_type = models.CharField(max_length=20, choices=SnapshotType.choices)
    batch_label = models.CharField(max_length=BATCH_LABEL_MAX_LENGTH, blank=True, default="")
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    product_ref = models.UUIDField(null=True, blank=True)
    product_name = models.CharField(max_length=255)
    vendor_ref = models.UUIDField(null=True, blank=True)
    vendor_name = models.CharField(max_length=255, blank=True, default="")
    quantity = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    pricing_mode = models.CharField(max_length=10, choices=PricingMode.choices)
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    case_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    unavailable_action = models.CharField(  # noqa: DJ01
        max_length=30,
        choices=UnavailableAction.choices,
        null=True,
        blank=True,
    )
    replacement_product_ref = models.UUIDField(null=True, blank=True)
    replacement_product_name = models.CharField(max_length=255, blank=True, default="")
    replacement_vendor_name = models.CharField(max_length=255, blank=True, default="")

    objects = OrderSnapshotQuerySet.as_manager()

    class Meta:
        db_table = "order_snapshots"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="snapshots_order_idx"),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise SnapshotImmutable(f"Snapshot {self.id} cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise SnapshotImmutable(f"Snapshot {self.id} cannot be deleted.")

    def __str__(self) -> str:
        return f"{self.snapshot_type} snapshot of {self.order_id}"


class OrderStatusHistory(BaseModel):
    """Append-only trail of status changes with the operator's notes.

    ``user`` is ``None`` for system-driven changes (batch submission).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.old_status} -> {self.new_status}"
