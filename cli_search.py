"""Terminal client that reuses the in-process search logic."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from time import perf_counter
from typing import Iterable

from catalog_search.cache import get_cache
from catalog_search.catalog_store import SqlProductCatalog, get_engine
from catalog_search.config import settings
from catalog_search.domain import Pagination, SearchResultPage
from catalog_search.errors import IndexUnavailable
from catalog_search.es_client import ElasticsearchIndexStore, build_index_store
from catalog_search.price_intent import PriceIntentParser
from catalog_search.search import SearchQueryBuilder
from catalog_search.search_service import SmartSearchService
from catalog_search.sync import IndexSyncEngine, sync_and_invalidate

MAX_RESULTS = settings.max_page_size
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def _store() -> ElasticsearchIndexStore:
    return build_index_store()


def perform_query(query: str, size: int = MAX_RESULTS) -> tuple[SearchResultPage, float]:
    service = SmartSearchService(_store())
    start = perf_counter()
    page = service.search(query, Pagination(page=0, size=size))
    return page, (perf_counter() - start) * 1000


def explain_query(query: str) -> str:
    intent = PriceIntentParser().parse(query)
    built = SearchQueryBuilder().build(intent.keyword, intent.ceiling, Pagination(size=MAX_RESULTS))
    return built.to_json()


def run_query(query: str, explain: bool = False) -> None:
    if explain:
        print(explain_query(query))
    try:
        page, eta = perform_query(query)
    except IndexUnavailable as exc:
        print(f"{RED}Search unavailable: {exc}{RESET}")
        return
    pretty_print_response(query, page, eta)


def interactive_shell(explain: bool = False) -> None:
    print("Interactive product search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        run_query(query, explain)


def pretty_print_response(query: str, page: SearchResultPage, eta: float) -> None:
    color = GREEN if eta < 200 else RED
    eta_label = f"{color}{eta:.1f} ms{RESET}"
    print(f"Query: {query} | results: {page.total} | ETA: {eta_label}")
    for idx, item in enumerate(page.items, start=1):
        price = item.price if item.price is not None else "-"
        print(f"  {idx:02d}. {item.name} | {item.category_name} | {price}")


def batch_mode(file_path: Path, explain: bool = False) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            run_query(query, explain)


def sync_index() -> int:
    engine = IndexSyncEngine(SqlProductCatalog(get_engine()), _store())
    result = sync_and_invalidate(engine, get_cache())
    if result.ok:
        print(f"{GREEN}Indexed {result.count} products{RESET}")
        return 0
    print(f"{RED}Sync failed during {result.stage}: {result.error}{RESET}")
    return 1


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the catalog search service")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--sync", action="store_true", help="Rebuild the index from the catalog database")
    parser.add_argument("--explain", action="store_true", help="Print the Elasticsearch request for each query")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.getLevelName(settings.log_level.upper()))
    if args.sync:
        return sync_index()
    if args.batch:
        batch_mode(args.batch, args.explain)
        return 0
    if args.query:
        run_query(args.query, args.explain)
        return 0
    interactive_shell(args.explain)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
