"""Tests for filtering, sorting, pagination and catalog state transitions."""

import pytest

from partshop.catalog import CatalogBrowser, apply_action, filter_sort_paginate, sort_products
from partshop.models import FilterSortState, SortKey
from partshop.product_store import ProductStore

from partshop.tests.conftest import make_product


def ids(products):
    return [p.id for p in products]


class TestSortProducts:
    """Tests for each sort key."""

    @pytest.mark.parametrize("sort_key,expected", [
        (SortKey.NAME, ["p2", "p1", "p5", "p4", "p3"]),
        (SortKey.PRICE_LOW, ["p2", "p4", "p1", "p3", "p5"]),
        (SortKey.PRICE_HIGH, ["p5", "p3", "p1", "p2", "p4"]),
        (SortKey.STOCK, ["p1", "p2", "p4", "p5", "p3"]),
    ])
    def test_sort_orders(self, sample_products, sort_key, expected):
        assert ids(sort_products(sample_products, sort_key)) == expected

    def test_name_sort_ignores_case_and_accents(self):
        products = [
            make_product("1", name="zeta"),
            make_product("2", name="Éclair"),
            make_product("3", name="alpha"),
        ]
        assert ids(sort_products(products, SortKey.NAME)) == ["3", "2", "1"]

    def test_price_sort_ignores_sale_price(self):
        products = [
            make_product("1", price="100", sale_price="5"),
            make_product("2", price="50"),
        ]
        assert ids(sort_products(products, SortKey.PRICE_LOW)) == ["2", "1"]

    def test_equal_keys_keep_original_order(self):
        products = [make_product(str(i), price="10") for i in range(6)]
        assert ids(sort_products(products, SortKey.PRICE_HIGH)) == ["0", "1", "2", "3", "4", "5"]

    def test_name_sort_is_idempotent(self, sample_products):
        once = sort_products(sample_products, SortKey.NAME)
        assert sort_products(once, SortKey.NAME) == once


class TestFilterSortPaginate:
    """Tests for the projection from products + state to a page."""

    def test_pages_partition_the_sorted_list(self, sample_products):
        expected = ids(sort_products(sample_products, SortKey.NAME))
        first = filter_sort_paginate(sample_products, FilterSortState(), page_size=2)

        collected = []
        for page in range(1, first.total_pages + 1):
            result = filter_sort_paginate(sample_products, FilterSortState(current_page=page), page_size=2)
            collected.extend(ids(result.items))

        assert first.total_pages == 3
        assert collected == expected

    def test_search_then_category(self, sample_products):
        state = FilterSortState(search_query="FILTER", selected_category="engine")
        result = filter_sort_paginate(sample_products, state)
        assert ids(result.items) == ["p2", "p4"]
        assert result.total_count == 2
        assert result.total_pages == 1

    def test_category_filter(self, sample_products):
        result = filter_sort_paginate(sample_products, FilterSortState(selected_category="braking"))
        assert ids(result.items) == ["p1"]

    def test_whitespace_query_does_not_filter(self, sample_products):
        result = filter_sort_paginate(sample_products, FilterSortState(search_query="   "))
        assert result.total_count == 5

    def test_no_matches_returns_empty_page(self, sample_products):
        result = filter_sort_paginate(sample_products, FilterSortState(search_query="flux capacitor"))
        assert result.items == []
        assert result.total_pages == 0
        assert result.total_count == 0
        assert result.page == 1
        assert not result.has_next
        assert not result.has_previous

    def test_page_beyond_range_is_clamped(self, sample_products):
        result = filter_sort_paginate(sample_products, FilterSortState(current_page=9), page_size=2)
        assert result.page == 3
        assert ids(result.items) == ["p3"]
        assert result.has_previous
        assert not result.has_next

    def test_default_page_size(self):
        products = [make_product(f"{i:02d}") for i in range(30)]
        result = filter_sort_paginate(products, FilterSortState())
        assert len(result.items) == 12
        assert result.total_pages == 3

    def test_invalid_page_size(self, sample_products):
        with pytest.raises(ValueError):
            filter_sort_paginate(sample_products, FilterSortState(), page_size=0)

    def test_empty_catalog(self):
        result = filter_sort_paginate([], FilterSortState())
        assert result.items == []
        assert result.total_pages == 0


class TestApplyAction:
    """Tests for the state transitions and page reset."""

    @pytest.mark.parametrize("action,value", [
        ("set_search", "brake"),
        ("set_category", "engine"),
        ("set_sort", "price-low"),
        ("clear_filters", None),
    ])
    def test_result_shape_changes_reset_page(self, action, value):
        state = FilterSortState(current_page=3)
        assert apply_action(state, action, value).current_page == 1

    def test_set_page_keeps_filters(self):
        state = FilterSortState(search_query="pad", selected_category="braking")
        new_state = apply_action(state, "set_page", 4)
        assert new_state.current_page == 4
        assert new_state.search_query == "pad"
        assert new_state.selected_category == "braking"

    def test_set_page_rejects_zero(self):
        with pytest.raises(ValueError):
            apply_action(FilterSortState(), "set_page", 0)

    def test_clear_filters_keeps_sort(self):
        state = FilterSortState(search_query="x", selected_category="body", sort_key="stock", current_page=2)
        cleared = apply_action(state, "clear_filters")
        assert cleared == FilterSortState(sort_key="stock")

    def test_unknown_action(self):
        with pytest.raises(ValueError):
            apply_action(FilterSortState(), "shuffle")

    def test_unknown_sort_key(self):
        with pytest.raises(ValueError):
            apply_action(FilterSortState(), "set_sort", "random")

    def test_state_is_not_mutated(self):
        state = FilterSortState(current_page=3)
        apply_action(state, "set_category", "engine")
        assert state.current_page == 3


class TestCatalogBrowser:
    """Tests for the browsing session with debounced search."""

    @pytest.fixture
    def browser(self, sample_products, fake_timers, notifier):
        store = ProductStore(products=sample_products)
        return CatalogBrowser(store, notifier=notifier, page_size=2, timer_factory=fake_timers)

    def test_category_change_from_page_three(self, browser):
        browser.go_to_page(3)
        browser.set_category("engine")
        assert browser.state.current_page == 1
        assert ids(browser.current_page().items) == ["p2", "p4"]

    def test_local_search_filters_immediately(self, browser, fake_timers):
        browser.set_search_query("shock")
        assert browser.is_searching
        assert ids(browser.current_page().items) == ["p3"]

        fake_timers.last.fire()
        assert not browser.is_searching

    def test_typing_burst_settles_once(self, browser, fake_timers):
        for text in ("c", "cl", "clu", "clut", "clutch"):
            browser.set_search_query(text)

        for timer in fake_timers.timers:
            timer.fire()

        assert not browser.is_searching
        assert browser.state.search_query == "clutch"

    def test_blank_query_cancels_pending_search(self, browser, fake_timers):
        browser.set_search_query("pad")
        browser.set_search_query("")
        assert fake_timers.last.cancelled
        assert not browser.is_searching
        assert not browser.debouncer.pending

    def test_clear_filters(self, browser):
        browser.set_search_query("pad")
        browser.set_category("braking")
        browser.clear_filters()
        assert browser.state == FilterSortState()
        assert not browser.is_searching
        assert browser.current_page().total_count == 5


class TestCatalogBrowserRemoteSearch:
    """Tests for browsing with a remote search collaborator."""

    def test_pages_over_remote_results(self, sample_products, fake_timers):
        calls = []

        def remote(query):
            calls.append(query)
            return [sample_products[4], sample_products[0]]

        browser = CatalogBrowser(ProductStore(products=sample_products), remote_search=remote, timer_factory=fake_timers)
        browser.set_search_query("anything")
        assert browser.current_page().items == []

        fake_timers.last.fire()
        assert calls == ["anything"]
        # Remote results are still sorted and paged locally
        assert ids(browser.current_page().items) == ["p1", "p5"]

    def test_remote_failure_notifies_and_shows_nothing(self, sample_products, fake_timers, notifier):
        def remote(query):
            raise ConnectionError("search service down")

        browser = CatalogBrowser(
            ProductStore(products=sample_products),
            remote_search=remote,
            notifier=notifier,
            timer_factory=fake_timers,
        )
        browser.set_search_query("brake")
        fake_timers.last.fire()

        assert not browser.is_searching
        assert browser.current_page().items == []
        assert [n.title for n in notifier.drain()] == ["Search Failed"]

    def test_stale_results_are_ignored(self, sample_products, fake_timers):
        browser = CatalogBrowser(
            ProductStore(products=sample_products),
            remote_search=lambda query: sample_products,
            timer_factory=fake_timers,
        )
        browser.set_search_query("old")
        old_timer = fake_timers.last
        browser.set_search_query("new")

        old_timer.fire()
        assert browser.is_searching
        assert browser.current_page().items == []
