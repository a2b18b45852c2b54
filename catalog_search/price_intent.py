"""Extraction of natural-language price ceilings from free-text queries.

Two phrase shapes are recognized, case-insensitively:

    A) a cue before the amount: ``"phones under 5000 rupees"``,
       ``"laptop below Rs. 50,000"``, ``"< 300"``
    B) a cue after the amount: ``"5000 or less"``, ``"2,000 inr and below"``

Only the leftmost phrase in the query is honored. Whatever is left once the
phrase and stray currency words are removed becomes the search keyword.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Optional

from .domain import PriceIntent

logger = logging.getLogger(__name__)

# Digits are mandatory; commas only ever sit between digit groups.
_AMOUNT = r"(?P<amount>\d+(?:,\d+)*)"
_CURRENCY = r"(?:rs\.?|inr|rupees?)"
_LEADING_CUE = (
    r"(?:\b(?:under|below|less\s+than|within|cheaper\s+than|upto|up\s+to|max(?:imum)?)(?![a-z])|<)"
)
_TRAILING_CUE = r"(?:or\s+less|and\s+below|max(?:imum)?)\b"

CEILING_BEFORE_NUMBER = re.compile(
    rf"{_LEADING_CUE}\s*(?:{_CURRENCY}\s*)?{_AMOUNT}(?:\s*{_CURRENCY}(?!\w))?",
    re.IGNORECASE,
)
CEILING_AFTER_NUMBER = re.compile(
    rf"(?<!\d){_AMOUNT}\s*(?:{_CURRENCY}\s*)?{_TRAILING_CUE}",
    re.IGNORECASE,
)
CURRENCY_TOKEN = re.compile(rf"(?<!\w){_CURRENCY}(?!\w)", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def parse_amount(text: str) -> Decimal:
    """Turn ``"1,00,000"`` into ``Decimal("100000")``."""
    return Decimal(text.replace(",", ""))


def strip_currency_tokens(text: str) -> str:
    """Drop standalone ``rs``/``rs.``/``inr``/``rupee(s)`` words and tidy spacing."""
    cleaned = CURRENCY_TOKEN.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def find_price_phrase(text: str) -> Optional[re.Match[str]]:
    """Return the leftmost price phrase of either shape, preferring shape A on ties."""
    before = CEILING_BEFORE_NUMBER.search(text)
    after = CEILING_AFTER_NUMBER.search(text)
    if before is None:
        return after
    if after is None or before.start() <= after.start():
        return before
    return after


def remove_span(text: str, start: int, end: int) -> str:
    """Cut ``text[start:end]`` out, dropping a comma left dangling on either side."""
    before = text[:start].rstrip()
    after = text[end:].lstrip()
    if before.endswith(","):
        before = before[:-1].rstrip()
    if after.startswith(","):
        after = after[1:].lstrip()
    return f"{before} {after}"


class PriceIntentParser:
    """Split a raw query into a keyword and an optional maximum price."""

    def parse(self, raw_query: str) -> PriceIntent:
        match = find_price_phrase(raw_query)
        if match is None:
            return PriceIntent(keyword=raw_query.strip(), ceiling=None)

        ceiling = parse_amount(match.group("amount"))
        residual = remove_span(raw_query, match.start(), match.end())
        keyword = strip_currency_tokens(residual) or None
        logger.debug(
            "price phrase=%r ceiling=%s keyword=%r q=%r",
            match.group(0),
            ceiling,
            keyword,
            raw_query,
        )
        return PriceIntent(keyword=keyword, ceiling=ceiling)
