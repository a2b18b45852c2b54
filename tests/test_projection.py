"""Tests for catalog-to-index projection."""
from decimal import Decimal

import pytest

from catalog_search.domain import Category
from catalog_search.errors import DataIntegrityError
from catalog_search.projection import CatalogProjector

from .fakes import make_product

projector = CatalogProjector()


def test_project_flattens_category_name():
    product = make_product(42, "Redmi Note 12", "4999.99", category=Category(id=7, name="Phones"))

    doc = projector.project(product)

    assert doc.id == "42"
    assert doc.name == "Redmi Note 12"
    assert doc.description == "Redmi Note 12 description"
    assert doc.price == Decimal("4999.99")
    assert doc.category_name == "Phones"
    assert doc.image_url == "https://img.example/42.png"


def test_project_is_deterministic():
    product = make_product(1, "Nokia 105", "1299.50")

    assert projector.project(product) == projector.project(product)


def test_project_reflects_category_at_call_time():
    before = projector.project(make_product(1, "Clean Code", "450", category=Category(id=2, name="Books")))
    after = projector.project(make_product(1, "Clean Code", "450", category=Category(id=2, name="Programming")))

    assert before.category_name == "Books"
    assert after.category_name == "Programming"


def test_missing_category_is_a_data_integrity_error():
    with pytest.raises(DataIntegrityError):
        projector.project(make_product(9, "Orphan", "10", category=None))


def test_source_keeps_decimal_precision():
    doc = projector.project(make_product(5, "Cable", "0.10"))

    assert doc.to_source()["price"] == "0.10"
