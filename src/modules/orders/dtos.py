"""Order DTOs for the service layer.

Framework-agnostic contracts (Pydantic v2, ``frozen=True``) between the DRF
serializers and the services.

Input:
- ``SubmitBatchDTO`` with either ``cart_item_ids`` or legacy ``items``.
- ``AddCartItemDTO`` / ``UpdateCartItemDTO`` for cart rows.
- ``UpdateOrderLineDTO`` for administrative corrections.

Output:
- ``SubmissionResult`` (plain dataclass, carries model instances).
- ``BatchSummaryDTO``, ``BuyAgainDTO``, ``OrderStatsDTO``,
  ``BuyerOverviewDTO``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    computed_field,
    field_validator,
    model_validator,
)

from modules.orders.constants import PricingMode

if TYPE_CHECKING:
    from modules.orders.models import Order


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class LegacyOrderItemDTO(BaseModel):
    """Explicit item descriptor used by clients that predate the cart.

    ``product_id`` is optional here on purpose: a missing reference is a
    data-integrity failure reported by the service, not a payload error.
    """

    model_config = ConfigDict(frozen=True)

    product_id: Optional[UUID] = None
    product_name: str = ""
    vendor_name: Optional[str] = None
    quantity: int
    pricing_mode: PricingMode = PricingMode.CASE
    unit_price: Optional[Decimal] = None
    case_price: Optional[Decimal] = None
    unavailable_action: Optional[str] = None
    replacement_product_id: Optional[UUID] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class SubmitBatchDTO(BaseModel):
    """Submission request: exactly one non-empty selection."""

    model_config = ConfigDict(frozen=True)

    buyer_id: int
    buyer_email: str
    buyer_name: str = ""
    cart_item_ids: Optional[List[UUID]] = None
    items: Optional[List[LegacyOrderItemDTO]] = None

    @model_validator(mode="after")
    def selection_must_not_be_empty(self):
        if self.cart_item_ids and self.items:
            raise ValueError("Submit either cart item ids or items, not both.")
        if not self.cart_item_ids and not self.items:
            raise ValueError("Submission must contain at least one item.")
        return self

    @field_validator("cart_item_ids")
    @classmethod
    def drop_duplicate_ids(cls, v: Optional[List[UUID]]) -> Optional[List[UUID]]:
        if v is None:
            return v
        return list(dict.fromkeys(v))

    @property
    def uses_cart(self) -> bool:
        return bool(self.cart_item_ids)


class AddCartItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    buyer_id: int
    buyer_email: str
    product_id: UUID
    quantity: int
    pricing_mode: PricingMode = PricingMode.CASE
    unavailable_action: Optional[str] = None
    replacement_product_id: Optional[UUID] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class UpdateCartItemDTO(BaseModel):
    """Partial update; ``None`` keeps the current value."""

    model_config = ConfigDict(frozen=True)

    quantity: Optional[int] = None
    pricing_mode: Optional[PricingMode] = None
    unavailable_action: Optional[str] = None
    replacement_product_id: Optional[UUID] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class UpdateOrderLineDTO(UpdateCartItemDTO):
    """Administrative correction of a submitted line."""

    unit_price: Optional[Decimal] = None
    case_price: Optional[Decimal] = None
    notes: Optional[str] = None

    @field_validator("unit_price", "case_price")
    @classmethod
    def price_not_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubmissionResult:
    batch_number: str
    orders: List["Order"] = field(default_factory=list)

    @property
    def total_amount(self) -> Decimal:
        return sum((o.amount for o in self.orders), Decimal("0.00"))


class BatchSummaryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    batch_number: str
    submitted_at: Optional[datetime]
    status: str
    total_amount: Decimal
    item_count: int


class BuyAgainItemDTO(BaseModel):
    """One line of a past batch, re-read against the current catalog.

    ``product`` is the current catalog detail when the product is still
    available; for unavailable lines only the denormalized names remain.
    """

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    product_id: Optional[UUID]
    product_name: str
    vendor_name: str
    quantity: int
    pricing_mode: str
    unavailable_action: Optional[str]
    product: Optional[dict] = None


class BuyAgainDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    batch_number: str
    available: List[BuyAgainItemDTO]
    unavailable: List[BuyAgainItemDTO]


class OrderStatsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_orders: int
    total_batches: int
    in_cart_orders: int
    pending_orders: int
    completed_orders: int
    cancelled_orders: int
    total_revenue: Decimal
    completed_revenue: Decimal


class BuyerActivityDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    buyer_id: int
    email: str
    name: str
    open_cart_items: int
    pending_batches: int
    completed_batches: int
    cancelled_batches: int
    completed_revenue: Decimal

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_active(self) -> bool:
        return any(
            (
                self.open_cart_items,
                self.pending_batches,
                self.completed_batches,
                self.cancelled_batches,
            )
        )


class BuyerOverviewDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: Optional[date]
    end_date: Optional[date]
    total_buyers: int
    active_buyers: int
    buyers: List[BuyerActivityDTO]
