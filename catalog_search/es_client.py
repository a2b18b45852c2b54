"""Elasticsearch client factory and the index store adapter.

The rest of the code works against the official synchronous client. Blocking
calls are wrapped via ``asyncio.to_thread`` by the caller where necessary.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Protocol, Sequence

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError, helpers

from .config import settings
from .domain import SearchDocument, SearchHits
from .errors import IndexUnavailable
from .indexing import load_mapping

logger = logging.getLogger(__name__)


class IndexStore(Protocol):
    def search(self, body: Dict[str, Any]) -> SearchHits: ...

    def delete_all(self) -> None: ...

    def bulk_insert(self, documents: Sequence[SearchDocument]) -> int: ...


@lru_cache(maxsize=1)
def get_client() -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", settings.es_host)
    return Elasticsearch(settings.es_host)


def _total_hits(hits: Dict[str, Any]) -> int:
    total = hits.get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


def _iter_actions(index: str, documents: Iterable[SearchDocument]) -> Iterable[dict]:
    for document in documents:
        yield {
            "_index": index,
            "_id": document.id,
            "_source": document.to_source(),
        }


class ElasticsearchIndexStore:
    """Index store backed by a single Elasticsearch index."""

    def __init__(self, client: Elasticsearch, index: str, mapping: Optional[Dict[str, Any]] = None) -> None:
        self.client = client
        self.index = index
        self.mapping = mapping

    def search(self, body: Dict[str, Any]) -> SearchHits:
        try:
            response = self.client.search(
                index=self.index,
                query=body["query"],
                from_=body.get("from", 0),
                size=body.get("size", 10),
                track_total_hits=body.get("track_total_hits", True),
            )
        except (ApiError, TransportError) as exc:
            logger.warning("search failed on index %s: %s", self.index, exc)
            raise IndexUnavailable(f"search on index {self.index!r} failed: {exc}") from exc
        hits = response.get("hits", {})
        return SearchHits(hits=list(hits.get("hits", [])), total=_total_hits(hits))

    def delete_all(self) -> None:
        try:
            self.client.delete_by_query(
                index=self.index,
                query={"match_all": {}},
                conflicts="proceed",
                refresh=True,
            )
        except NotFoundError:
            logger.info("Index %s does not exist; nothing to delete", self.index)
            self._create_index()
        except (ApiError, TransportError) as exc:
            raise IndexUnavailable(f"could not clear index {self.index!r}: {exc}") from exc

    def _create_index(self) -> None:
        # Without an explicit mapping the first bulk write would guess field types.
        if not self.mapping:
            return
        try:
            self.client.indices.create(
                index=self.index,
                settings=self.mapping.get("settings"),
                mappings=self.mapping.get("mappings"),
            )
        except (ApiError, TransportError) as exc:
            raise IndexUnavailable(f"could not create index {self.index!r}: {exc}") from exc
        logger.info("Created index %s", self.index)

    def bulk_insert(self, documents: Sequence[SearchDocument]) -> int:
        if not documents:
            return 0
        actions = list(_iter_actions(self.index, documents))
        try:
            indexed, _ = helpers.bulk(self.client, actions, refresh="wait_for")
        except helpers.BulkIndexError as exc:
            raise IndexUnavailable(
                f"{len(exc.errors)} of {len(actions)} documents were rejected by {self.index!r}"
            ) from exc
        except (ApiError, TransportError) as exc:
            raise IndexUnavailable(f"bulk insert into {self.index!r} failed: {exc}") from exc
        return indexed


def build_index_store(client: Optional[Elasticsearch] = None) -> ElasticsearchIndexStore:
    """Index store for the configured index, able to recreate it from the bundled mapping."""
    mapping = load_mapping(Path(settings.mapping_path))
    return ElasticsearchIndexStore(client or get_client(), settings.es_index, mapping)
