"""Order domain exceptions.

Raised by the service layer; the views translate them into HTTP responses
carrying ``{"detail": str(exc), "code": exc.code}``.
"""

from __future__ import annotations


class OrderError(Exception):
    code = "order_error"


class OrderNotFound(OrderError):
    """The requested order line does not exist (or belongs to someone else)."""

    code = "order_not_found"


class BatchNotFound(OrderError):
    """No order line carries the requested batch label."""

    code = "batch_not_found"


class BuyerNotFound(OrderError):
    """Admin filter referenced a buyer email that matches no user."""

    code = "buyer_not_found"


class CartItemNotFound(OrderError):
    """Cart row is unknown, not the caller's, or already submitted."""

    code = "cart_item_not_found"


class InvalidOrderStatus(OrderError):
    """Status value outside ``OrderStatus``, or the line is in the wrong state."""

    code = "invalid_status"


class InvalidStatusTransition(InvalidOrderStatus):
    """Status is valid but the move is not in ``VALID_TRANSITIONS``."""

    code = "invalid_status_transition"


class NoClaimableCartItems(OrderError):
    """None of the selected cart rows could be claimed for a new batch.

    Either they never belonged to the buyer, or a concurrent submission
    claimed them first.
    """

    code = "no_claimable_cart_items"


class MissingProductReference(OrderError):
    """A line to be submitted has no (existing) product reference.

    Fatal for the whole submission: buy-again and the audit trail both
    depend on the product link.
    """

    code = "missing_product_reference"


class BatchLabelExhausted(OrderError):
    """No unique batch label could be generated within the retry limit."""

    code = "batch_label_exhausted"


class SnapshotImmutable(OrderError):
    """Snapshots are append-only; updates and deletes are refused."""

    code = "snapshot_immutable"


class CartItemAudited(OrderError):
    """Cart row was submitted once and returned to the cart; its audit
    trail keeps it from being deleted."""

    code = "cart_item_audited"
