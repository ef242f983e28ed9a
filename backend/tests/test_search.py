from datetime import datetime

from supermart.domain import Product
from supermart.services.catalog_service import search_products


def _p(pid, name, sku):
    return Product(
        id=pid, sku=sku, name=name, price_cents=100, cost_price_cents=50,
        quantity=5, min_threshold=1, last_updated=datetime(2026, 1, 1),
    )


CATALOG = [
    _p("1", "Red Apples", "RS100"),
    _p("2", "Whole Milk 1L", "WL101"),
    _p("3", "Whole Wheat Bread", "WD102"),
    _p("4", "Chicken Breast 500g", "CT103"),
]


def test_blank_term_returns_catalog():
    assert search_products(CATALOG, "   ") == CATALOG


def test_substring_match_is_case_insensitive():
    assert [p.id for p in search_products(CATALOG, "whole")][:2] == ["2", "3"]


def test_sku_match():
    assert search_products(CATALOG, "ct103")[0].id == "4"


def test_typo_tolerated():
    assert search_products(CATALOG, "chiken")[0].id == "4"


def test_substring_hits_rank_first():
    results = search_products(CATALOG, "bread")
    assert results[0].id == "3"


def test_no_match():
    assert search_products(CATALOG, "zzzzqqq") == []


def test_limit():
    assert len(search_products(CATALOG, "whole", limit=1)) == 1
