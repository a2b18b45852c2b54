"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


DEFAULT_MAPPING_PATH = str(Path(__file__).with_name("product-mapping.json"))


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "products")
    mapping_path: str = _get_env("MAPPING_PATH", DEFAULT_MAPPING_PATH)
    database_url: str = _get_env("DATABASE_URL", "sqlite:///catalog.db")
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "300"))
    sync_on_startup: bool = _get_env("SYNC_ON_STARTUP", "true").lower() in {"1", "true", "yes"}
    default_page_size: int = int(_get_env("DEFAULT_PAGE_SIZE", "10"))
    max_page_size: int = int(_get_env("MAX_PAGE_SIZE", "100"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
