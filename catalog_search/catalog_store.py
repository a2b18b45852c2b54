"""Read access to the relational system of record for products and categories."""
from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from typing import List, Optional, Protocol

from sqlalchemy import ForeignKey, Numeric, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, selectinload

from .config import settings
from .domain import CanonicalProduct, Category
from .errors import CatalogStoreError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class CategoryRow(Base):
    __tablename__ = "categories"

    category_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    category_name: Mapped[str] = mapped_column(String(150), unique=True)
    category_description: Mapped[Optional[str]] = mapped_column(Text)


class ProductRow(Base):
    __tablename__ = "products"

    product_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_name: Mapped[str] = mapped_column(String(200))
    product_description: Mapped[Optional[str]] = mapped_column(Text)
    product_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    image_url: Mapped[Optional[str]] = mapped_column(String(255))
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.category_id"))
    category: Mapped[CategoryRow] = relationship(lazy="raise")


class ProductCatalog(Protocol):
    def list_all_products(self) -> List[CanonicalProduct]: ...


def _to_category(row: Optional[CategoryRow]) -> Optional[Category]:
    if row is None:
        return None
    return Category(id=row.category_id, name=row.category_name, description=row.category_description)


def _to_product(row: ProductRow) -> CanonicalProduct:
    return CanonicalProduct(
        id=row.product_id,
        name=row.product_name,
        description=row.product_description,
        price=row.product_price,
        image_url=row.image_url,
        category=_to_category(row.category),
    )


class SqlProductCatalog:
    """Catalog reader over the ``products``/``categories`` tables."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def list_all_products(self) -> List[CanonicalProduct]:
        stmt = select(ProductRow).options(selectinload(ProductRow.category)).order_by(ProductRow.product_id)
        try:
            with Session(self.engine) as session:
                rows = session.scalars(stmt).all()
                products = [_to_product(row) for row in rows]
        except SQLAlchemyError as exc:
            raise CatalogStoreError(f"could not read products: {exc}") from exc
        logger.debug("loaded %s products from the catalog", len(products))
        return products


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    engine = create_engine(settings.database_url)
    logger.info("Connecting to catalog database %s", engine.url.render_as_string(hide_password=True))
    return engine
