"""Query construction and execution against the product index."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .domain import (
    CATEGORY_BOOST,
    DESCRIPTION_BOOST,
    FUZZINESS,
    NAME_BOOST,
    Pagination,
    SearchDocument,
    SearchQuery,
    SearchResultPage,
)
from .es_client import IndexStore

logger = logging.getLogger(__name__)

TEXT_FIELDS = [
    f"name^{NAME_BOOST}",
    f"category_name^{CATEGORY_BOOST}",
    f"description^{DESCRIPTION_BOOST}",
]
PRICE_FIELD = "price"


# Free text only ever enters the query as a dict value; the JSON encoder escapes
# quotes, backslashes and line breaks, so it cannot change the query structure.
def _multi_match(keyword: str) -> Dict[str, Any]:
    return {
        "multi_match": {
            "query": keyword,
            "fields": list(TEXT_FIELDS),
            "fuzziness": FUZZINESS,
        }
    }


def _price_filter(ceiling: Decimal) -> Dict[str, Any]:
    return {"range": {PRICE_FIELD: {"lte": format(ceiling, "f")}}}


class SearchQueryBuilder:
    """Build boosted fuzzy queries, optionally gated by a non-scoring price filter."""

    def build(
        self,
        keyword: Optional[str],
        ceiling: Optional[Decimal] = None,
        pagination: Optional[Pagination] = None,
    ) -> SearchQuery:
        pagination = pagination or Pagination()
        keyword = keyword.strip() if keyword else None

        if ceiling is None:
            # Without a keyword there is nothing to score; match everything.
            clause = _multi_match(keyword) if keyword else {"match_all": {}}
        else:
            must: List[Dict[str, Any]] = [_multi_match(keyword) if keyword else {"match_all": {}}]
            clause = {"bool": {"must": must, "filter": [_price_filter(ceiling)]}}

        query = SearchQuery(
            keyword=keyword or None,
            ceiling=ceiling,
            pagination=pagination,
            clause=clause,
        )
        logger.debug("ES query payload=%s", query.to_json())
        return query


class SearchExecutor:
    """Run a built query and map hits back into a result page."""

    def __init__(self, store: IndexStore) -> None:
        self.store = store

    def execute(self, query: SearchQuery) -> SearchResultPage:
        response = self.store.search(query.body())
        items = [SearchDocument.from_hit(hit) for hit in response.hits]
        return SearchResultPage(items=items, total=response.total, pagination=query.pagination)

