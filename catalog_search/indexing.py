"""Index creation and maintenance helpers."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from elasticsearch import ApiError, BadRequestError, Elasticsearch, NotFoundError, TransportError

from .config import settings
from .errors import IndexUnavailable

logger = logging.getLogger(__name__)


def load_mapping(mapping_path: Path) -> dict:
    with mapping_path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


async def ensure_index(es: Elasticsearch, index: str | None = None) -> bool:
    """Create the products index if it is missing. Returns True when created."""

    index = index or settings.es_index
    mapping_path = Path(settings.mapping_path)
    body = load_mapping(mapping_path)

    try:
        exists = await asyncio.to_thread(es.indices.exists, index=index)
        if exists:
            return False
        logger.info("Creating index %s using %s", index, mapping_path)
        await asyncio.to_thread(
            es.indices.create,
            index=index,
            settings=body.get("settings"),
            mappings=body.get("mappings"),
        )
    except BadRequestError as exc:
        if getattr(exc, "error", "") == "resource_already_exists_exception":
            logger.info("Index %s already exists", index)
            return False
        logger.exception("Failed to create index: %s", exc)
        raise IndexUnavailable(f"could not create index {index!r}: {exc}") from exc
    except (ApiError, TransportError) as exc:
        raise IndexUnavailable(f"could not prepare index {index!r}: {exc}") from exc
    return True


async def index_is_empty(es: Elasticsearch, index: str | None = None) -> bool:
    try:
        stats = await asyncio.to_thread(es.count, index=index or settings.es_index)
        return stats.get("count", 0) == 0
    except NotFoundError:
        return True
