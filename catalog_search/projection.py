"""Projection of canonical catalog records into search documents."""
from __future__ import annotations

from .domain import CanonicalProduct, SearchDocument
from .errors import DataIntegrityError


class CatalogProjector:
    """Flatten a product and its category into the indexed shape."""

    def project(self, product: CanonicalProduct) -> SearchDocument:
        if product.category is None:
            raise DataIntegrityError(f"product {product.id} has no category")
        return SearchDocument(
            id=str(product.id),
            name=product.name,
            description=product.description,
            price=product.price,
            # Copied at projection time; a later category rename shows up after the next sync.
            category_name=product.category.name,
            image_url=product.image_url,
        )
