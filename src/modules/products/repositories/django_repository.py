"""Django ORM implementation of the catalog repository.

Follows the Null Object convention: look-ups return ``None`` (or an empty
list) instead of raising, and the service layer decides what a missing
product means for its use-case.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q

from modules.products.models import Product, ProductStatus, Vendor
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    def get_by_id(self, id: Any) -> Optional[Product]:
        """Alive product by primary key; ``None`` for unknown or malformed ids."""
        try:
            return Product.objects.alive().select_related("vendor").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_available(self, id: UUID | str) -> Optional[Product]:
        product = self.get_by_id(id)
        if product is None or product.status != ProductStatus.ACTIVE:
            return None
        return product

    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        wanted = [pk for pk in ids if pk is not None]
        if not wanted:
            return {}
        return {
            product.id: product
            for product in Product.objects.select_related("vendor").filter(id__in=wanted)
        }

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        queryset = Product.objects.alive().select_related("vendor")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), sku=entity.sku)
        return entity

    def get_vendor_by_name(self, name: str) -> Optional[Vendor]:
        if not name or not name.strip():
            return None
        return Vendor.objects.alive().filter(name__iexact=name.strip()).first()

    def find_similar(
        self,
        source: Product,
        category_field: str,
        same_vendor_only: bool,
        limit: int,
    ) -> List[Product]:
        """Candidates sharing ``category_field`` with ``source``.

        Vendor scope matches on the vendor FK.  Candidates without an FK
        match on the free-text vendor name, as does everything when the
        source product itself has no FK.  When ``same_vendor_only`` is
        false the source vendor is excluded under the same rule.
        """
        category = getattr(source, category_field)
        if not category:
            return []

        queryset = (
            Product.objects.alive()
            .select_related("vendor")
            .filter(status=ProductStatus.ACTIVE, **{category_field: category})
            .exclude(id=source.id)
        )

        vendor_scope = _vendor_predicate(source)
        if vendor_scope is not None:
            if same_vendor_only:
                queryset = queryset.filter(vendor_scope)
            else:
                queryset = queryset.exclude(vendor_scope)

        return list(queryset.order_by("name", "id")[:limit])


def _vendor_predicate(source: Product) -> Optional[Q]:
    if source.vendor_id:
        scope = Q(vendor_id=source.vendor_id)
        name = source.display_vendor_name
        if name:
            # Imported rows often carry only the free-text vendor name.
            scope |= Q(vendor__isnull=True, vendor_name__iexact=name)
        return scope
    if source.vendor_name:
        return Q(vendor_name__iexact=source.vendor_name)
    return None
