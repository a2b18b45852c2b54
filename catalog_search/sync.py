"""Full rebuild of the search index from the canonical catalog."""
from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import List, Optional

from .cache import CacheBackend
from .catalog_store import ProductCatalog
from .domain import SearchDocument, SyncResult
from .errors import CatalogSearchError
from .es_client import IndexStore
from .projection import CatalogProjector

logger = logging.getLogger(__name__)


class IndexSyncEngine:
    """Wipe-and-rebuild synchronization of the index store.

    The index is cleared before the new documents are written, so searches that
    run in between can see partial or empty results. A failure after the wipe
    leaves the index degraded until the next successful run. Concurrent runs
    are not serialized here.
    """

    def __init__(
        self,
        catalog: ProductCatalog,
        store: IndexStore,
        projector: CatalogProjector | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.projector = projector or CatalogProjector()

    def sync_all(self) -> SyncResult:
        started = perf_counter()
        stage = "read"
        try:
            products = self.catalog.list_all_products()
            stage = "project"
            documents: List[SearchDocument] = [self.projector.project(p) for p in products]
            stage = "delete"
            self.store.delete_all()
            stage = "insert"
            self.store.bulk_insert(documents)
        except CatalogSearchError as exc:
            if stage == "insert":
                logger.error("sync failed after the index was cleared; search is degraded until the next sync: %s", exc)
            else:
                logger.error("sync failed during %s: %s", stage, exc)
            return SyncResult(count=0, error=exc, stage=stage)

        elapsed_ms = (perf_counter() - started) * 1000
        logger.info("sync complete: indexed=%s took=%.2fms", len(documents), elapsed_ms)
        return SyncResult(count=len(documents))


def sync_and_invalidate(engine: IndexSyncEngine, cache: Optional[CacheBackend]) -> SyncResult:
    """Rebuild the index, then drop cached search pages if the rebuild succeeded."""
    result = engine.sync_all()
    if result.ok and cache is not None:
        cache.clear()
    return result


class SingleFlightSync:
    """Run at most one sync at a time; a trigger that arrives mid-run is refused."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self.last_result: Optional[SyncResult] = None

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self, engine: IndexSyncEngine, cache: Optional[CacheBackend] = None) -> Optional[SyncResult]:
        if self._lock.locked():
            return None
        async with self._lock:
            result = await asyncio.to_thread(sync_and_invalidate, engine, cache)
            self.last_result = result
            return result
