"""FastAPI application wiring the search service."""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Callable, Optional

from elasticsearch import ApiError, TransportError
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from .cache import CacheBackend, get_cache, search_cache_key
from .catalog_store import SqlProductCatalog, get_engine
from .config import settings
from .domain import Pagination, SyncResult
from .errors import DataIntegrityError, IndexUnavailable
from .es_client import IndexStore, build_index_store, get_client
from .indexing import ensure_index, index_is_empty
from .models import SearchPageResponse, SyncResponse
from .search_service import SmartSearchService
from .sync import IndexSyncEngine, SingleFlightSync

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# Force a predictable logging setup even when run under uvicorn. ``force=True``
# replaces uvicorn's default handlers.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Catalog Search Service")
sync_guard = SingleFlightSync()


@lru_cache(maxsize=1)
def get_index_store() -> IndexStore:
    return build_index_store()


def get_search_service() -> SmartSearchService:
    return SmartSearchService(get_index_store())


def get_sync_engine() -> IndexSyncEngine:
    return IndexSyncEngine(SqlProductCatalog(get_engine()), get_index_store())


def get_search_cache() -> CacheBackend:
    return get_cache()


async def run_sync(engine: IndexSyncEngine, cache: CacheBackend) -> Optional[SyncResult]:
    return await sync_guard.run(engine, cache)


async def run_startup_sync(
    engine_factory: Callable[[], IndexSyncEngine],
    cache_factory: Callable[[], CacheBackend],
) -> Optional[SyncResult]:
    """Initial rebuild; failures, including broken configuration, are logged and the service keeps running."""
    logger.info("Application ready, starting index sync")
    try:
        result = await run_sync(engine_factory(), cache_factory())
    except Exception:
        logger.exception("Startup index sync crashed; search may be degraded")
        return None
    if result is None:
        logger.info("Startup index sync skipped: another sync is running")
    elif result.ok:
        logger.info("Startup index sync complete: %s products indexed", result.count)
    else:
        logger.warning("Startup index sync FAILED during %s (search may be degraded): %s", result.stage, result.error)
    return result


@app.on_event("startup")
async def startup_event() -> None:
    try:
        await ensure_index(get_client())
    except (IndexUnavailable, OSError, ValueError) as exc:
        logger.warning("Could not prepare index on startup: %s", exc)
    if settings.sync_on_startup:
        # Scheduled, not awaited: it runs once startup has completed.
        app.state.startup_sync = asyncio.create_task(run_startup_sync(get_sync_engine, get_search_cache))


@app.get("/health")
async def health() -> dict:
    es = get_client()
    try:
        status = await asyncio.to_thread(es.cluster.health)
        es_status = status.get("status")
        empty = await index_is_empty(es)
    except (ApiError, TransportError) as exc:
        logger.warning("Health check could not reach Elasticsearch: %s", exc)
        es_status, empty = "unavailable", None
    last = sync_guard.last_result
    return {
        "elasticsearch": es_status,
        "index": settings.es_index,
        "empty": empty,
        "sync_running": sync_guard.running,
        "last_sync": SyncResponse.from_result(last).model_dump() if last else None,
    }


@app.get("/search", response_model=SearchPageResponse)
async def search(
    q: str = Query("", description="Search query"),
    page: int = Query(0, ge=0),
    size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    service: SmartSearchService = Depends(get_search_service),
    cache: CacheBackend = Depends(get_search_cache),
) -> SearchPageResponse:
    pagination = Pagination(page=page, size=size)
    key = search_cache_key(q, page, size) if q.strip() else None
    if key:
        cached = cache.get(key)
        if cached is not None:
            logger.debug("cache_hit q=%r", q)
            return SearchPageResponse(**{**cached, "query": q})

    try:
        result = await asyncio.to_thread(service.search, q, pagination)
    except IndexUnavailable as exc:
        raise HTTPException(status_code=503, detail=f"Search is unavailable: {exc}") from exc

    response = SearchPageResponse.from_page(q, result)
    if key:
        cache.set(key, response.model_dump(mode="json"), settings.cache_ttl_seconds)
    return response


@app.post("/sync", response_model=SyncResponse)
async def sync(
    engine: IndexSyncEngine = Depends(get_sync_engine),
    cache: CacheBackend = Depends(get_search_cache),
):
    result = await run_sync(engine, cache)
    if result is None:
        raise HTTPException(status_code=409, detail="A sync is already running")
    body = SyncResponse.from_result(result)
    if result.ok:
        return body
    status_code = 500 if isinstance(result.error, DataIntegrityError) else 503
    return JSONResponse(status_code=status_code, content=body.model_dump())
