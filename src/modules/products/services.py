"""Replacement resolution over the product catalog.

A buyer who asks for an out-of-stock item to be replaced gets a
same-category substitute: first by exact sub-category, then (only if that
tier is empty) by main category.  Vendor scope is either "same vendor only"
or "any vendor except this one".
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple
from uuid import UUID

import structlog
from django.conf import settings

from modules.products.dtos import MatchTier, ProductSummaryDTO, SimilarProductsDTO
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

MAX_SIMILAR_LIMIT = 50

CATEGORY_TIERS: Tuple[Tuple[MatchTier, str], ...] = (
    ("sub_category", "sub_category"),
    ("main_category", "main_category"),
)


class ReplacementResolver:
    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    def find_similar(
        self,
        product_id: UUID | str,
        limit: Optional[int] = None,
        same_vendor_only: bool = False,
    ) -> SimilarProductsDTO:
        """Return same-category substitutes for ``product_id``.

        Ordering within a tier is alphabetical by name (id breaks ties), so
        repeated calls against an unchanged catalog return the same list.

        Raises:
            ProductNotFound: the source product does not exist.
        """
        source = self._product_repo.get_by_id(product_id)
        if source is None:
            raise ProductNotFound(f"Product {product_id} not found.")

        if limit is None:
            limit = settings.ORDERS_SIMILAR_PRODUCTS_LIMIT
        limit = max(1, min(int(limit), MAX_SIMILAR_LIMIT))

        log = logger.bind(
            product_id=str(source.id),
            same_vendor_only=same_vendor_only,
            limit=limit,
        )

        matched_by: Optional[MatchTier] = None
        candidates: List[Product] = []
        for tier, field in CATEGORY_TIERS:
            candidates = self._product_repo.find_similar(
                source, field, same_vendor_only, limit
            )
            if candidates:
                matched_by = tier
                break

        log.info("product.similar_resolved", matched_by=matched_by, count=len(candidates))
        return SimilarProductsDTO(
            source_product_id=source.id,
            matched_by=matched_by,
            same_vendor_only=same_vendor_only,
            products=[ProductSummaryDTO.from_entity(p) for p in candidates],
        )

    def resolve(self, product_id: Optional[UUID | str]) -> Optional[Product]:
        """Current catalog row for a chosen replacement, or ``None`` if gone."""
        if product_id is None:
            return None
        return self._product_repo.get_available(product_id)
