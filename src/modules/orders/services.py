"""Order service layer (Use Cases).

Orchestrates batch submission, status management, administrative line
edits and the buyer's cart.  Every multi-row write runs inside one
``transaction.atomic()`` block owned by the service; notifications are sent
only after that block has committed and never fail the operation.

Business rules enforced:
- Submission is all-or-nothing: a missing product reference aborts the
  whole batch.
- Cart rows are claimed with a conditional update, so two overlapping
  submissions never claim the same row.
- Unknown vendors and vanished replacement products degrade the line
  (fields left empty) instead of failing it.
- Status changes are checked against ``OrderStatus`` and, unless disabled
  by ``ORDERS_ENFORCE_STATUS_TRANSITIONS``, against ``VALID_TRANSITIONS``.
- Every status change is recorded in ``OrderStatusHistory``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.orders.batch_labels import buyer_display_name, generate_batch_label
from modules.orders.constants import (
    DEFAULT_UNAVAILABLE_ACTION,
    REPLACEMENT_ACTIONS,
    OrderStatus,
    SnapshotType,
    UnavailableAction,
)
from modules.orders.dtos import SubmissionResult
from modules.orders.exceptions import (
    BatchNotFound,
    CartItemAudited,
    CartItemNotFound,
    InvalidOrderStatus,
    InvalidStatusTransition,
    MissingProductReference,
    NoClaimableCartItems,
    OrderNotFound,
)
from modules.orders.notifications import CeleryNotificationSink, line_payloads
from modules.orders.pricing import compute_amount, to_money
from modules.orders.snapshots import SnapshotRecorder
from modules.products.exceptions import ProductNotFound
from modules.products.services import ReplacementResolver

if TYPE_CHECKING:
    from modules.orders.dtos import (
        AddCartItemDTO,
        SubmitBatchDTO,
        UpdateCartItemDTO,
        UpdateOrderLineDTO,
    )
    from modules.orders.models import Order
    from modules.orders.notifications import INotificationSink
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.models import Product, Vendor
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class _OrderLineService:
    """Line resolution shared by submission and the cart."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._resolver = ReplacementResolver(product_repository)

    def _resolve_vendor(self, vendor_name: Optional[str], log: Any) -> Optional[Vendor]:
        if not vendor_name:
            return None
        vendor = self._product_repo.get_vendor_by_name(vendor_name)
        if vendor is None:
            log.warning("order.vendor_not_found", vendor_name=vendor_name)
        return vendor

    def _coerce_action(self, value: Optional[str], log: Any) -> str:
        if value in UnavailableAction.values:
            return value
        log.warning(
            "order.unavailable_action_coerced",
            submitted=value,
            coerced_to=str(DEFAULT_UNAVAILABLE_ACTION),
        )
        return DEFAULT_UNAVAILABLE_ACTION

    def _resolve_replacement(
        self,
        action: Optional[str],
        replacement_product_id: Optional[UUID],
        log: Any,
    ) -> Dict[str, Any]:
        """Replacement fields for ``action``; empty unless a replacement resolves."""
        fields: Dict[str, Any] = {
            "replacement_product": None,
            "replacement_product_name": "",
            "replacement_vendor_name": "",
        }
        if action not in REPLACEMENT_ACTIONS or replacement_product_id is None:
            return fields

        replacement = self._resolver.resolve(replacement_product_id)
        if replacement is None:
            log.warning(
                "order.replacement_not_found",
                replacement_product_id=str(replacement_product_id),
            )
            return fields

        fields["replacement_product"] = replacement
        fields["replacement_product_name"] = replacement.name
        fields["replacement_vendor_name"] = replacement.display_vendor_name
        return fields


class OrderService(_OrderLineService):
    """Application service for order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        notifier: Optional[INotificationSink] = None,
        snapshot_recorder: Optional[SnapshotRecorder] = None,
    ) -> None:
        super().__init__(order_repository, product_repository)
        self._notifier = notifier if notifier is not None else CeleryNotificationSink()
        self._snapshots = snapshot_recorder or SnapshotRecorder()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_batch(self, dto: SubmitBatchDTO) -> SubmissionResult:
        """Turn the buyer's selection into a new ``pending`` batch.

        Steps (one atomic block):
        1. Load the selection: lock the buyer's ``in_cart`` rows, or build
           lines from the legacy item descriptors.
        2. Create the batch with a unique label.
        3. Per line, in selection order: resolve vendor, coerce the
           unavailable action, resolve the replacement, compute the amount,
           persist as ``pending`` and record an ``original`` snapshot.

        Raises:
            NoClaimableCartItems: no selected cart row could be claimed.
            MissingProductReference: a line has no product to point at.
            BatchLabelExhausted: no unique label within the retry limit.
        """
        log = logger.bind(buyer_id=dto.buyer_id)
        log.info("order.submission_started", uses_cart=dto.uses_cart)

        with transaction.atomic():
            if dto.uses_cart:
                result = self._submit_cart_rows(dto, log)
            else:
                result = self._submit_legacy_items(dto, log)

        log.info(
            "order.batch_submitted",
            batch_number=result.batch_number,
            line_count=len(result.orders),
            total_amount=str(result.total_amount),
        )
        self._notify_submitted(dto, result, log)
        return result

    def _create_batch(self, dto: SubmitBatchDTO):
        display_name = buyer_display_name(dto.buyer_name, dto.buyer_email)
        now = timezone.now()
        batch = self._order_repo.create_batch(
            lambda attempt: generate_batch_label(display_name, now=now, attempt=attempt),
            buyer_id=dto.buyer_id,
            buyer_email=dto.buyer_email,
            submitted_at=now,
        )
        return batch

    def _submit_cart_rows(self, dto: SubmitBatchDTO, log: Any) -> SubmissionResult:
        requested = list(dto.cart_item_ids or [])
        locked = {row.id: row for row in self._order_repo.lock_cart_rows(dto.buyer_id, requested)}
        rows = [locked[pk] for pk in requested if pk in locked]

        if len(rows) != len(requested):
            log.warning(
                "order.cart_count_mismatch",
                requested=len(requested),
                claimable=len(rows),
            )
        if not rows:
            raise NoClaimableCartItems("None of the selected cart items can be submitted.")

        for row in rows:
            if row.product_id is None:
                raise MissingProductReference(
                    f"Cart item {row.id} ({row.product_name}) has no product reference."
                )

        batch = self._create_batch(dto)
        submitted: List[Order] = []
        for row in rows:
            line_log = log.bind(order_id=str(row.id))
            vendor = self._resolve_vendor(row.vendor_name, line_log)
            action = self._coerce_action(row.unavailable_action, line_log)
            replacement = self._resolve_replacement(
                action, row.replacement_product_id, line_log
            )
            changes = {
                "batch": batch,
                "status": OrderStatus.PENDING,
                "submitted_at": batch.submitted_at,
                "buyer_email": dto.buyer_email or row.buyer_email,
                "vendor_id": vendor.id if vendor is not None else row.vendor_id,
                "unavailable_action": action,
                "amount": compute_amount(
                    row.quantity, row.pricing_mode, row.unit_price, row.case_price
                ),
                **replacement,
            }
            if not self._order_repo.claim_cart_row(row, changes):
                line_log.warning("order.cart_item_skipped")
                continue
            self._order_repo.add_history(
                order_id=row.id,
                new_status=OrderStatus.PENDING,
                old_status=OrderStatus.IN_CART,
                notes="Batch submitted",
            )
            # A line returned to the cart already has its original snapshot.
            snapshot_type = (
                SnapshotType.MODIFIED
                if self._order_repo.has_audit_trail(row.id)
                else SnapshotType.ORIGINAL
            )
            self._snapshots.record(row, snapshot_type, batch_label=batch.label)
            submitted.append(row)

        if not submitted:
            raise NoClaimableCartItems(
                "All selected cart items were claimed by another submission."
            )
        return SubmissionResult(batch_number=batch.label, orders=submitted)

    def _submit_legacy_items(self, dto: SubmitBatchDTO, log: Any) -> SubmissionResult:
        items = list(dto.items or [])
        products = self._product_repo.get_many(item.product_id for item in items)
        for index, item in enumerate(items):
            if item.product_id is None or item.product_id not in products:
                raise MissingProductReference(
                    f"Item {index} ({item.product_name or 'unnamed'}) has no valid "
                    f"product reference."
                )

        batch = self._create_batch(dto)
        submitted: List[Order] = []
        for item in items:
            product: Product = products[item.product_id]
            line_log = log.bind(product_id=str(product.id))
            vendor_name = item.vendor_name or product.display_vendor_name
            vendor = self._resolve_vendor(vendor_name, line_log)
            action = self._coerce_action(item.unavailable_action, line_log)
            replacement = self._resolve_replacement(
                action, item.replacement_product_id, line_log
            )
            unit_price = (
                to_money(item.unit_price)
                if item.unit_price is not None
                else product.wholesale_unit_price
            )
            case_price = (
                to_money(item.case_price)
                if item.case_price is not None
                else product.wholesale_case_price
            )
            order = self._order_repo.create_line(
                {
                    "batch": batch,
                    "product": product,
                    "product_name": item.product_name or product.name,
                    "vendor": vendor,
                    "vendor_name": vendor_name or "",
                    "quantity": item.quantity,
                    "pricing_mode": item.pricing_mode,
                    "unit_price": unit_price,
                    "case_price": case_price,
                    "amount": compute_amount(
                        item.quantity, item.pricing_mode, unit_price, case_price
                    ),
                    "status": OrderStatus.PENDING,
                    "buyer_id": dto.buyer_id,
                    "buyer_email": dto.buyer_email,
                    "unavailable_action": action,
                    "submitted_at": batch.submitted_at,
                    **replacement,
                }
            )
            self._order_repo.add_history(
                order_id=order.id,
                new_status=OrderStatus.PENDING,
                old_status=None,
                notes="Batch submitted",
            )
            self._snapshots.record(order, SnapshotType.ORIGINAL, batch_label=batch.label)
            submitted.append(order)

        return SubmissionResult(batch_number=batch.label, orders=submitted)

    def _notify_submitted(self, dto: SubmitBatchDTO, result: SubmissionResult, log: Any) -> None:
        lines = line_payloads(result.orders)
        try:
            self._notifier.send_order_confirmation(dto.buyer_email, result.batch_number, lines)
        except Exception:
            log.exception("order.confirmation_notification_failed")
        try:
            self._notifier.send_support_notification(
                buyer_display_name(dto.buyer_name, dto.buyer_email),
                result.batch_number,
                len(result.orders),
                result.total_amount,
            )
        except Exception:
            log.exception("order.support_notification_failed")

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def set_order_status(
        self,
        order_id: UUID | str,
        new_status: str,
        notes: Optional[str] = None,
        user: Any = None,
    ) -> Order:
        """Move one line to ``new_status``.

        Raises:
            InvalidOrderStatus: ``new_status`` is not an order status.
            OrderNotFound: the line does not exist.
            InvalidStatusTransition: the move is not allowed.
        """
        self._check_membership(new_status)
        log = logger.bind(order_id=str(order_id), new_status=new_status)

        with transaction.atomic():
            order = self._order_repo.get_for_update(order_id)
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found.")
            batch_number = order.batch_number
            self._check_transition(order, new_status, log)
            self._apply_status(order, new_status, notes, user)

        log.info("order.status_updated", batch_number=batch_number)
        self._notify_status(order.buyer_email, batch_number, [order], new_status, notes, log)
        return self._order_repo.get_by_id(order.id) or order

    def set_batch_status(
        self,
        batch_number: str,
        new_status: str,
        notes: Optional[str] = None,
        user: Any = None,
    ) -> List[Order]:
        """Move every line of a batch; one invalid line rejects them all.

        Raises:
            InvalidOrderStatus: ``new_status`` is not an order status.
            BatchNotFound: no line carries ``batch_number``.
            InvalidStatusTransition: the move is not allowed for some line.
        """
        self._check_membership(new_status)
        log = logger.bind(batch_number=batch_number, new_status=new_status)

        with transaction.atomic():
            lines = self._order_repo.lock_batch_lines(batch_number)
            if not lines:
                raise BatchNotFound(f"Batch {batch_number} not found.")
            for line in lines:
                self._check_transition(line, new_status, log.bind(order_id=str(line.id)))
            for line in lines:
                self._apply_status(line, new_status, notes, user)

        log.info("order.batch_status_updated", line_count=len(lines))
        buyer_email = next((line.buyer_email for line in lines if line.buyer_email), "")
        self._notify_status(buyer_email, batch_number, lines, new_status, notes, log)
        return lines

    def _check_membership(self, new_status: str) -> None:
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus(
                f"Invalid status '{new_status}'. Allowed: {', '.join(OrderStatus.values)}."
            )

    def _check_transition(self, order: Order, new_status: str, log: Any) -> None:
        if order.batch_id is None and new_status != OrderStatus.IN_CART:
            log.warning("order.invalid_transition", current_status=order.status)
            raise InvalidStatusTransition(
                f"Order {order.id} has not been submitted and cannot move to {new_status}."
            )
        if not settings.ORDERS_ENFORCE_STATUS_TRANSITIONS:
            return
        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition", current_status=order.status)
            raise InvalidStatusTransition(
                f"Cannot transition from {order.status} to {new_status}."
            )

    def _apply_status(
        self, order: Order, new_status: str, notes: Optional[str], user: Any
    ) -> None:
        old_status = order.status
        order.status = new_status
        if notes is not None:
            order.notes = notes
        if new_status == OrderStatus.IN_CART:
            order.batch = None
            order.submitted_at = None
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            new_status=new_status,
            old_status=old_status,
            notes=notes or "",
            user=user,
        )

    def _notify_status(
        self,
        buyer_email: str,
        batch_number: Optional[str],
        orders: List[Order],
        new_status: str,
        notes: Optional[str],
        log: Any,
    ) -> None:
        try:
            self._notifier.send_status_update(
                buyer_email, batch_number, line_payloads(orders), new_status, notes
            )
        except Exception:
            log.exception("order.status_notification_failed")

    # ------------------------------------------------------------------
    # Administrative edits
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_order_line(
        self, order_id: UUID | str, dto: UpdateOrderLineDTO, user: Any = None
    ) -> Order:
        """Correct a submitted line and record a ``modified`` snapshot.

        Raises:
            OrderNotFound: the line does not exist.
            InvalidOrderStatus: the line is still in a cart.
        """
        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        if order.status == OrderStatus.IN_CART:
            raise InvalidOrderStatus(f"Order {order_id} is still in a cart.")

        log = logger.bind(order_id=str(order.id), user_id=getattr(user, "pk", None))

        if dto.quantity is not None:
            order.quantity = dto.quantity
        if dto.pricing_mode is not None:
            order.pricing_mode = dto.pricing_mode
        if dto.unit_price is not None:
            order.unit_price = to_money(dto.unit_price)
        if dto.case_price is not None:
            order.case_price = to_money(dto.case_price)
        if dto.notes is not None:
            order.notes = dto.notes
        if dto.unavailable_action is not None or dto.replacement_product_id is not None:
            action = self._coerce_action(
                dto.unavailable_action or order.unavailable_action, log
            )
            replacement_id = dto.replacement_product_id or order.replacement_product_id
            order.unavailable_action = action
            for field, value in self._resolve_replacement(action, replacement_id, log).items():
                setattr(order, field, value)

        order.recompute_amount()
        self._order_repo.save(order)
        self._snapshots.record(order, SnapshotType.MODIFIED)
        log.info("order.line_modified", amount=str(order.amount))
        return self._order_repo.get_by_id(order.id) or order


class CartService(_OrderLineService):
    """The buyer's cart: ``in_cart`` order lines without a batch."""

    def list_items(self, buyer_id: int) -> List[Order]:
        return list(
            self._order_repo.list({"buyer_id": buyer_id, "status": OrderStatus.IN_CART})
            .order_by("created_at", "id")
        )

    @transaction.atomic
    def add_item(self, dto: AddCartItemDTO) -> Order:
        """Add a product to the cart, merging into an existing row for it.

        Raises:
            ProductNotFound: the product is unknown or not available.
        """
        product = self._product_repo.get_available(dto.product_id)
        if product is None:
            raise ProductNotFound(f"Product {dto.product_id} not found.")

        log = logger.bind(buyer_id=dto.buyer_id, product_id=str(product.id))
        action = (
            self._coerce_action(dto.unavailable_action, log)
            if dto.unavailable_action is not None
            else None
        )

        existing = self._order_repo.find_cart_item_for_product(dto.buyer_id, product.id)
        if existing is not None:
            existing.quantity += dto.quantity
            existing.pricing_mode = dto.pricing_mode
            if action is not None:
                existing.unavailable_action = action
                self._apply_replacement(existing, action, dto.replacement_product_id, log)
            existing.recompute_amount()
            self._order_repo.save(existing)
            log.info("cart.item_merged", order_id=str(existing.id), quantity=existing.quantity)
            return existing

        vendor_name = product.display_vendor_name
        vendor = product.vendor or self._resolve_vendor(vendor_name, log)
        data = {
            "product": product,
            "product_name": product.name,
            "vendor": vendor,
            "vendor_name": vendor_name,
            "quantity": dto.quantity,
            "pricing_mode": dto.pricing_mode,
            "unit_price": product.wholesale_unit_price,
            "case_price": product.wholesale_case_price,
            "amount": compute_amount(
                dto.quantity,
                dto.pricing_mode,
                product.wholesale_unit_price,
                product.wholesale_case_price,
            ),
            "status": OrderStatus.IN_CART,
            "buyer_id": dto.buyer_id,
            "buyer_email": dto.buyer_email,
            "unavailable_action": action,
            **self._resolve_replacement(action, dto.replacement_product_id, log),
        }
        order = self._order_repo.create_line(data)
        log.info("cart.item_added", order_id=str(order.id))
        return order

    @transaction.atomic
    def update_item(
        self, buyer_id: int, item_id: UUID | str, dto: UpdateCartItemDTO
    ) -> Order:
        order = self._get_item(buyer_id, item_id)
        log = logger.bind(buyer_id=buyer_id, order_id=str(order.id))

        if dto.quantity is not None:
            order.quantity = dto.quantity
        if dto.pricing_mode is not None:
            order.pricing_mode = dto.pricing_mode
        if dto.unavailable_action is not None:
            order.unavailable_action = self._coerce_action(dto.unavailable_action, log)
        if dto.unavailable_action is not None or dto.replacement_product_id is not None:
            self._apply_replacement(
                order,
                order.unavailable_action,
                dto.replacement_product_id or order.replacement_product_id,
                log,
            )

        order.recompute_amount()
        self._order_repo.save(order)
        log.info("cart.item_updated", quantity=order.quantity)
        return order

    @transaction.atomic
    def remove_item(self, buyer_id: int, item_id: UUID | str) -> None:
        order = self._get_item(buyer_id, item_id)
        if self._order_repo.has_audit_trail(order.id):
            raise CartItemAudited(f"Cart item {item_id} has an audit trail and cannot be removed.")
        order_id = order.id
        self._order_repo.delete_line(order)
        logger.info("cart.item_removed", buyer_id=buyer_id, order_id=str(order_id))

    @transaction.atomic
    def clear(self, buyer_id: int) -> int:
        deleted = self._order_repo.delete_cart(buyer_id)
        logger.info("cart.cleared", buyer_id=buyer_id, removed=deleted)
        return deleted

    def _get_item(self, buyer_id: int, item_id: UUID | str) -> Order:
        order = self._order_repo.get_cart_item(buyer_id, item_id, for_update=True)
        if order is None:
            raise CartItemNotFound(f"Cart item {item_id} not found.")
        return order

    def _apply_replacement(
        self,
        order: Order,
        action: Optional[str],
        replacement_product_id: Optional[UUID],
        log: Any,
    ) -> None:
        for field, value in self._resolve_replacement(
            action, replacement_product_id, log
        ).items():
            setattr(order, field, value)
