"""Public search entry point composing parsing, query building and execution."""
from __future__ import annotations

import logging
from time import perf_counter

from .domain import Pagination, SearchResultPage
from .es_client import IndexStore
from .price_intent import PriceIntentParser
from .search import SearchExecutor, SearchQueryBuilder

logger = logging.getLogger(__name__)


class SmartSearchService:
    def __init__(
        self,
        store: IndexStore,
        parser: PriceIntentParser | None = None,
        builder: SearchQueryBuilder | None = None,
    ) -> None:
        self.parser = parser or PriceIntentParser()
        self.builder = builder or SearchQueryBuilder()
        self.executor = SearchExecutor(store)

    def search(self, raw_query: str | None, pagination: Pagination | None = None) -> SearchResultPage:
        pagination = pagination or Pagination()
        if raw_query is None or not raw_query.strip():
            return SearchResultPage.empty(pagination)

        t0 = perf_counter()
        intent = self.parser.parse(raw_query)
        # A ceiling of None yields the plain multi-field query.
        query = self.builder.build(intent.keyword, intent.ceiling, pagination)
        t1 = perf_counter()
        page = self.executor.execute(query)
        t2 = perf_counter()

        logger.info(
            "timing: total=%.2fms build=%.2fms es=%.2fms q=%r keyword=%r ceiling=%s hits=%s total=%s",
            (t2 - t0) * 1000,
            (t1 - t0) * 1000,
            (t2 - t1) * 1000,
            raw_query,
            intent.keyword,
            intent.ceiling,
            len(page.items),
            page.total,
        )
        return page
