"""Tests for ProductStore loading, lookup and local search."""

import pytest

from partshop.product_store import ProductStore, matches_query

from partshop.tests.conftest import make_product


class TestMatchesQuery:
    """Tests for the case-insensitive search predicate."""

    @pytest.mark.parametrize("query", ["brake", "BRAKE", "bp-front", "camry", "bosch", "pads - front"])
    def test_matches_any_search_field(self, sample_products, query):
        assert matches_query(sample_products[0], query)

    def test_blank_query_matches_everything(self, sample_products):
        assert all(matches_query(p, "   ") for p in sample_products)

    def test_category_is_not_searched(self, sample_products):
        assert not matches_query(sample_products[0], "braking")

    def test_query_is_not_trimmed(self):
        product = make_product("1", name="Brake")
        assert not matches_query(product, " brake ")


class TestProductStoreRefresh:
    """Tests for refresh() success and failure."""

    def test_refresh_replaces_snapshot(self, sample_products):
        store = ProductStore(fetch_all=lambda: sample_products)
        assert store.refresh() is True
        assert store.loaded
        assert store.error is None
        assert [p.id for p in store.get_all()] == ["p1", "p2", "p3", "p4", "p5"]

    def test_failed_fetch_leaves_store_empty(self, sample_products, notifier):
        def broken():
            raise ConnectionError("database unreachable")

        store = ProductStore(fetch_all=broken, products=sample_products, notifier=notifier)
        assert store.refresh() is False
        assert store.get_all() == []
        assert not store.loaded
        assert store.error == "Failed to load products. Please try again."

        [notification] = notifier.drain()
        assert notification.severity == "error"

    def test_retry_after_failure(self, sample_products):
        responses = [ConnectionError("down"), sample_products]

        def flaky():
            result = responses.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        store = ProductStore(fetch_all=flaky)
        assert store.refresh() is False
        assert store.refresh() is True
        assert len(store) == 5
        assert store.error is None

    def test_duplicate_ids_fail_the_refresh(self):
        store = ProductStore(fetch_all=lambda: [make_product("1"), make_product("1")])
        assert store.refresh() is False
        assert store.get_all() == []

    def test_refresh_without_fetcher(self):
        with pytest.raises(RuntimeError):
            ProductStore(products=[]).refresh()

    def test_duplicate_ids_rejected_at_construction(self):
        with pytest.raises(ValueError):
            ProductStore(products=[make_product("1"), make_product("1")])


class TestProductStoreQueries:
    """Tests for lookups over the snapshot."""

    @pytest.fixture
    def store(self, sample_products):
        return ProductStore(products=sample_products)

    def test_get_all_returns_copy(self, store):
        store.get_all().clear()
        assert len(store) == 5

    def test_get(self, store):
        assert store.get("p3").name == "Shock Absorber"
        assert store.get("missing") is None

    def test_get_by_category(self, store):
        assert [p.id for p in store.get_by_category("engine")] == ["p2", "p4"]

    def test_search_local_keeps_store_order(self, store):
        assert [p.id for p in store.search_local("filter")] == ["p2", "p4"]

    def test_search_local_blank_returns_all(self, store):
        assert len(store.search_local("")) == 5

    def test_categories_in_first_seen_order(self, store):
        assert store.categories() == ["braking", "engine", "suspension", "transmission"]
