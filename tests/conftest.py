"""Shared fixtures."""
from __future__ import annotations

from typing import List

import pytest

from catalog_search.domain import CanonicalProduct

from .fakes import BOOKS, FakeCatalog, FakeIndexStore, make_product


@pytest.fixture
def products() -> List[CanonicalProduct]:
    return [
        make_product(1, "Redmi Note 12", "4999.99"),
        make_product(2, "Galaxy S23", "74999.00"),
        make_product(3, "Nokia 105", "1299.50"),
        make_product(4, "Clean Code", "450.00", category=BOOKS, description="A handbook of agile craftsmanship"),
    ]


@pytest.fixture
def index_store() -> FakeIndexStore:
    return FakeIndexStore()


@pytest.fixture
def catalog(products) -> FakeCatalog:
    return FakeCatalog(products)
