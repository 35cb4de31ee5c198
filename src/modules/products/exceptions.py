"""Catalog exceptions raised by the product service layer."""

from __future__ import annotations


class ProductNotFound(Exception):
    """The requested product does not exist or has been soft-deleted."""

    code = "product_not_found"
