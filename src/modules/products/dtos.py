"""Catalog DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from modules.products.models import Product

MatchTier = Literal["sub_category", "main_category"]


class ProductSummaryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    sku: str
    name: str
    vendor_id: Optional[UUID]
    vendor_name: str
    main_category: str
    sub_category: str
    wholesale_unit_price: Optional[Decimal]
    wholesale_case_price: Optional[Decimal]
    case_pack: Optional[int]
    status: str

    @classmethod
    def from_entity(cls, product: Product) -> ProductSummaryDTO:
        return cls(
            id=product.id,
            sku=product.sku,
            name=product.name,
            vendor_id=product.vendor_id,
            vendor_name=product.display_vendor_name,
            main_category=product.main_category,
            sub_category=product.sub_category,
            wholesale_unit_price=product.wholesale_unit_price,
            wholesale_case_price=product.wholesale_case_price,
            case_pack=product.case_pack,
            status=product.status,
        )


class SimilarProductsDTO(BaseModel):
    """Replacement candidates plus the category tier that produced them.

    ``matched_by`` is ``None`` when neither tier found anything; callers
    must not assume ``products`` is non-empty.
    """

    model_config = ConfigDict(frozen=True)

    source_product_id: UUID
    matched_by: Optional[MatchTier]
    same_vendor_only: bool
    products: List[ProductSummaryDTO]
