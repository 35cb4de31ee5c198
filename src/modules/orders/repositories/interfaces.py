"""Order repository interface.

Extends ``IRepository[Order]`` with what the batch engine needs: locked
reads of cart rows and batches, the conditional cart-row claim, batch
creation with unique labels, and the status history trail.

The service layer depends exclusively on this contract.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderBatch, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Order]:
        """Order line with a row-level lock, ``None`` when missing."""

    @abstractmethod
    def lock_cart_rows(self, buyer_id: int, ids: Sequence[UUID]) -> List[Order]:
        """Lock the buyer's ``in_cart`` rows among ``ids`` (others are ignored)."""

    @abstractmethod
    def claim_cart_row(self, order: Order, changes: Dict[str, Any]) -> bool:
        """Apply ``changes`` only if the row is still ``in_cart``.

        Returns ``False`` when a concurrent submission claimed it first.
        """

    @abstractmethod
    def create_line(self, data: Dict[str, Any]) -> Order:
        """Insert a new order line."""

    @abstractmethod
    def create_batch(
        self,
        label_factory: Callable[[int], str],
        buyer_id: Optional[int],
        buyer_email: str,
        submitted_at: datetime,
    ) -> OrderBatch:
        """Create a batch, retrying ``label_factory(attempt)`` on collisions."""

    @abstractmethod
    def lock_batch_lines(self, batch_number: str) -> List[Order]:
        """All lines of a batch, locked, in insertion order."""

    @abstractmethod
    def batch_lines(self, batch_number: str, buyer_id: Optional[int] = None) -> List[Order]:
        """Lines of a batch, optionally restricted to one buyer."""

    @abstractmethod
    def get_cart_item(
        self, buyer_id: int, id: Any, for_update: bool = False
    ) -> Optional[Order]:
        """A buyer's ``in_cart`` row by id."""

    @abstractmethod
    def find_cart_item_for_product(
        self, buyer_id: int, product_id: UUID
    ) -> Optional[Order]:
        """The buyer's ``in_cart`` row for ``product_id``, locked."""

    @abstractmethod
    def has_audit_trail(self, order_id: UUID) -> bool:
        """Whether any snapshot references the line."""

    @abstractmethod
    def delete_line(self, order: Order) -> None:
        """Hard-delete a cart row."""

    @abstractmethod
    def delete_cart(self, buyer_id: int) -> int:
        """Delete the buyer's ``in_cart`` rows without an audit trail;
        returns the count."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        old_status: Optional[str],
        notes: str = "",
        user: Any = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
