"""Pydantic models for request/response payloads."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .domain import SearchDocument, SearchResultPage, SyncResult


class ProductResult(BaseModel):
    id: str
    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    category_name: str | None = None
    image_url: str | None = None

    @classmethod
    def from_document(cls, document: SearchDocument) -> "ProductResult":
        return cls(
            id=document.id,
            name=document.name,
            description=document.description,
            price=document.price,
            category_name=document.category_name,
            image_url=document.image_url,
        )


class SearchPageResponse(BaseModel):
    query: str = Field(..., description="Search query as received")
    content: list[ProductResult]
    total_elements: int
    total_pages: int
    page: int
    size: int

    @classmethod
    def from_page(cls, query: str, page: SearchResultPage) -> "SearchPageResponse":
        return cls(
            query=query,
            content=[ProductResult.from_document(doc) for doc in page.items],
            total_elements=page.total,
            total_pages=page.total_pages,
            page=page.pagination.page,
            size=page.pagination.size,
        )


class SyncResponse(BaseModel):
    status: str
    indexed: int = 0
    detail: Optional[str] = None
    stage: Optional[str] = None

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResponse":
        if result.ok:
            return cls(status="ok", indexed=result.count, detail="Synchronization successful!")
        return cls(status="failed", indexed=0, detail=str(result.error), stage=result.stage)
