"""Catalog repository contract used by ordering and replacement resolution."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from uuid import UUID

    from modules.products.models import Product, Vendor


class IProductRepository(IRepository["Product"]):
    @abstractmethod
    def get_available(self, id: UUID | str) -> Optional[Product]:
        """Return the product only if it is alive and active."""

    @abstractmethod
    def get_many(self, ids: Iterable[UUID]) -> dict:
        """Map id -> product (soft-deleted rows included)."""

    @abstractmethod
    def get_vendor_by_name(self, name: str) -> Optional[Vendor]:
        """Case-insensitive vendor look-up; ``None`` when unknown."""

    @abstractmethod
    def find_similar(
        self,
        source: Product,
        category_field: str,
        same_vendor_only: bool,
        limit: int,
    ) -> List[Product]:
        """Available products sharing ``category_field`` with ``source``."""
