"""Tests for the FastAPI surface."""
from __future__ import annotations

import asyncio
import dataclasses
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from catalog_search import main
from catalog_search.cache import InMemoryCache
from catalog_search.errors import IndexUnavailable
from catalog_search.search_service import SmartSearchService
from catalog_search.sync import IndexSyncEngine

from .fakes import FakeCatalog, FakeIndexStore, make_product


@pytest.fixture
def store() -> FakeIndexStore:
    return FakeIndexStore()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def client(store, cache, catalog):
    main.app.dependency_overrides[main.get_search_service] = lambda: SmartSearchService(store)
    main.app.dependency_overrides[main.get_sync_engine] = lambda: IndexSyncEngine(catalog, store)
    main.app.dependency_overrides[main.get_search_cache] = lambda: cache
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def test_sync_then_search(client, store):
    response = client.post("/sync")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["indexed"] == 4

    response = client.get("/search", params={"q": "phones under 5000 rupees"})

    assert response.status_code == 200
    body = response.json()
    assert body["query"] == "phones under 5000 rupees"
    assert body["total_elements"] == 2
    assert body["page"] == 0
    assert body["size"] == 10
    assert {item["name"] for item in body["content"]} == {"Redmi Note 12", "Nokia 105"}
    assert {item["price"] for item in body["content"]} == {"4999.99", "1299.50"}


def test_blank_query_returns_empty_page(client, store):
    response = client.get("/search", params={"q": "  ", "page": 2, "size": 5})

    assert response.status_code == 200
    assert response.json() == {
        "query": "  ",
        "content": [],
        "total_elements": 0,
        "total_pages": 0,
        "page": 2,
        "size": 5,
    }
    assert store.calls == []


def test_missing_query_parameter_is_treated_as_blank(client, store):
    response = client.get("/search")

    assert response.status_code == 200
    assert response.json()["content"] == []


def test_invalid_pagination_is_rejected(client):
    assert client.get("/search", params={"q": "phones", "page": -1}).status_code == 422
    assert client.get("/search", params={"q": "phones", "size": 0}).status_code == 422


def test_search_unavailable_index_returns_503(client, store):
    store.fail_on.add("search")

    response = client.get("/search", params={"q": "phones"})

    assert response.status_code == 503


def test_repeated_search_is_served_from_cache(client, store):
    client.post("/sync")
    client.get("/search", params={"q": "galaxy"})
    client.get("/search", params={"q": "galaxy"})

    assert store.calls.count("search") == 1


def test_sync_clears_cached_pages(client, store, catalog):
    client.post("/sync")
    assert client.get("/search", params={"q": "pixel"}).json()["total_elements"] == 0

    catalog.products.append(make_product(10, "Pixel 8", "59999.00"))
    client.post("/sync")

    assert client.get("/search", params={"q": "pixel"}).json()["total_elements"] == 1


def test_sync_failure_reports_503(client, store):
    store.fail_on.add("bulk_insert")

    response = client.post("/sync")

    assert response.status_code == 503
    assert response.json()["status"] == "failed"
    assert response.json()["stage"] == "insert"


def test_sync_data_integrity_failure_reports_500(client, catalog):
    catalog.products.append(make_product(11, "Orphan", "1", category=None))

    response = client.post("/sync")

    assert response.status_code == 500
    assert response.json()["stage"] == "project"


def test_overlapping_sync_is_refused(client, monkeypatch):
    async def busy(engine, cache=None):
        return None

    monkeypatch.setattr(main.sync_guard, "run", busy)

    assert client.post("/sync").status_code == 409


def test_startup_sync_failure_is_logged_not_raised(store, cache, caplog):
    engine = IndexSyncEngine(FakeCatalog(fail=True), store)

    result = asyncio.run(main.run_startup_sync(lambda: engine, lambda: cache))

    assert result is not None and not result.ok
    assert "Startup index sync FAILED" in caplog.text


def test_startup_sync_crash_is_contained(cache, caplog):
    class Exploding:
        def sync_all(self):
            raise RuntimeError("boom")

    result = asyncio.run(main.run_startup_sync(Exploding, lambda: cache))

    assert result is None
    assert "Startup index sync crashed" in caplog.text


@pytest.fixture
def startup(monkeypatch, catalog):
    """Point the startup hook at a mocked client and in-memory stores."""
    es = MagicMock()
    es.indices.exists.return_value = True
    es.cluster.health.return_value = {"status": "green"}
    es.count.return_value = {"count": 4}
    store = FakeIndexStore()
    cache = InMemoryCache()
    built = []

    def engine_factory():
        engine = IndexSyncEngine(catalog, store)
        built.append(engine)
        return engine

    monkeypatch.setattr(main, "get_client", lambda: es)
    monkeypatch.setattr(main, "get_sync_engine", engine_factory)
    monkeypatch.setattr(main, "get_search_cache", lambda: cache)
    monkeypatch.setattr(main.app.state, "startup_sync", None, raising=False)
    return SimpleNamespace(es=es, store=store, cache=cache, built=built)


def _startup_result(client):
    async def wait():
        return await main.app.state.startup_sync

    return client.portal.call(wait)


def test_startup_schedules_one_sync(startup):
    with TestClient(main.app) as client:
        result = _startup_result(client)

    startup.es.indices.exists.assert_called_once()
    assert len(startup.built) == 1
    assert result is not None and result.ok
    assert result.count == 4
    assert len(startup.store.documents) == 4


def test_startup_tolerates_unreachable_index(startup, monkeypatch, caplog):
    async def unreachable(es, index=None):
        raise IndexUnavailable("connection refused")

    monkeypatch.setattr(main, "ensure_index", unreachable)

    with TestClient(main.app) as client:
        result = _startup_result(client)

    assert "Could not prepare index on startup" in caplog.text
    assert len(startup.built) == 1
    assert result.ok


def test_startup_tolerates_unreadable_mapping(startup, monkeypatch, caplog):
    async def missing_mapping(es, index=None):
        raise FileNotFoundError("product-mapping.json")

    monkeypatch.setattr(main, "ensure_index", missing_mapping)

    with TestClient(main.app) as client:
        assert client.get("/health").status_code == 200
        _startup_result(client)

    assert "Could not prepare index on startup" in caplog.text


def test_startup_survives_broken_database_config(startup, monkeypatch, caplog):
    def missing_driver():
        raise ModuleNotFoundError("No module named 'psycopg2'")

    monkeypatch.setattr(main, "get_sync_engine", missing_driver)

    with TestClient(main.app) as client:
        result = _startup_result(client)
        assert client.get("/health").status_code == 200

    assert result is None
    assert "Startup index sync crashed" in caplog.text


def test_startup_sync_can_be_disabled(startup, monkeypatch):
    monkeypatch.setattr(main, "settings", dataclasses.replace(main.settings, sync_on_startup=False))

    with TestClient(main.app):
        pass

    assert main.app.state.startup_sync is None
    assert startup.built == []
