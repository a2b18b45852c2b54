"""Records shared by the search core: canonical products, index documents, pages."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class CanonicalProduct:
    """A product as held by the system of record."""

    id: int
    name: str
    description: Optional[str]
    price: Decimal
    image_url: Optional[str]
    category: Optional[Category]


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


@dataclass(frozen=True)
class SearchDocument:
    """Denormalized product as stored in the search index."""

    id: str
    name: Optional[str]
    description: Optional[str]
    price: Optional[Decimal]
    category_name: Optional[str]
    image_url: Optional[str]

    def to_source(self) -> Dict[str, Any]:
        # Price goes over the wire as a plain decimal string; the index coerces it.
        return {
            "name": self.name,
            "description": self.description,
            "price": format(self.price, "f") if self.price is not None else None,
            "category_name": self.category_name,
            "image_url": self.image_url,
        }

    @classmethod
    def from_hit(cls, hit: Dict[str, Any]) -> "SearchDocument":
        source = hit.get("_source", {})
        return cls(
            id=str(hit.get("_id", source.get("id", ""))),
            name=source.get("name"),
            description=source.get("description"),
            price=_to_decimal(source.get("price")),
            category_name=source.get("category_name"),
            image_url=source.get("image_url"),
        )


@dataclass(frozen=True)
class PriceIntent:
    """Keyword and optional price ceiling extracted from one raw query."""

    keyword: Optional[str]
    ceiling: Optional[Decimal] = None

    @property
    def has_ceiling(self) -> bool:
        return self.ceiling is not None


@dataclass(frozen=True)
class Pagination:
    page: int = 0
    size: int = 10

    def __post_init__(self) -> None:
        if self.page < 0:
            raise ValueError("page must not be negative")
        if self.size < 1:
            raise ValueError("size must be at least 1")

    @property
    def offset(self) -> int:
        return self.page * self.size


NAME_BOOST = 3
CATEGORY_BOOST = 2
DESCRIPTION_BOOST = 1
FUZZINESS = "AUTO"


@dataclass(frozen=True)
class SearchQuery:
    """A built request against the index: the query clause plus paging."""

    keyword: Optional[str]
    ceiling: Optional[Decimal]
    pagination: Pagination
    clause: Dict[str, Any]
    boosts: Dict[str, int] = field(
        default_factory=lambda: {
            "name": NAME_BOOST,
            "category_name": CATEGORY_BOOST,
            "description": DESCRIPTION_BOOST,
        }
    )
    fuzziness: str = FUZZINESS

    def body(self) -> Dict[str, Any]:
        return {
            "query": self.clause,
            "from": self.pagination.offset,
            "size": self.pagination.size,
            "track_total_hits": True,
        }

    def to_json(self) -> str:
        return json.dumps(self.body(), ensure_ascii=False)


@dataclass(frozen=True)
class SearchHits:
    """Raw hits and total count as reported by the index store."""

    hits: List[Dict[str, Any]]
    total: int


@dataclass(frozen=True)
class SearchResultPage:
    items: List[SearchDocument]
    total: int
    pagination: Pagination

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.pagination.size) if self.total else 0

    @classmethod
    def empty(cls, pagination: Pagination) -> "SearchResultPage":
        return cls(items=[], total=0, pagination=pagination)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one full rebuild; ``stage`` names the step that failed."""

    count: int
    error: Optional[Exception] = None
    stage: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
