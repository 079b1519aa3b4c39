import asyncio

import pytest

from muthawwif.listing import BLOG, CATALOG, FilterState, ListingPage, ListingView
from muthawwif.utils.result import Result


def test_category_round_trips_through_query_string():
    state = FilterState.from_query_string(BLOG, "?category=5")

    assert state.get("category") == "5"
    assert state.to_query_string() == "category=5"

    state.set("category", "")
    assert state.to_query_string() == ""


def test_changing_a_filter_resets_page():
    state = FilterState.from_query_string(BLOG, "page=3&search=umrah")
    assert state.page == 3

    state.set("search", "haji")

    assert state.page == 1
    assert state.to_query_string() == "search=haji"


def test_page_is_kept_in_query_string_after_first():
    state = FilterState(BLOG)
    state.set_page(2)

    assert state.to_params() == {"page": "2"}
    assert state.offset == 9
    assert state.limit == 9


def test_malformed_page_falls_back_to_first():
    assert FilterState.from_query_string(BLOG, "page=abc").page == 1
    assert FilterState.from_query_string(BLOG, "page=-4").page == 1


def test_default_sort_is_left_out_of_url():
    state = FilterState(CATALOG)
    assert state.get("sortBy") == "newest"
    assert state.to_query_string() == ""

    state.set("sortBy", "price_low")
    state.set("search", "umrah haji")
    assert state.to_params() == {"search": "umrah haji", "sortBy": "price_low"}
    assert "search=umrah+haji" in state.to_query_string()


def test_unknown_keys_are_ignored_when_hydrating():
    state = FilterState.from_query_string(CATALOG, "utm_source=ig&type=course")

    assert state.to_params() == {"type": "course"}


def test_unknown_key_cannot_be_set():
    state = FilterState(CATALOG)

    with pytest.raises(KeyError):
        state.set("page", 2)
    with pytest.raises(KeyError):
        state.set("color", "red")


def test_clear_resets_everything():
    state = FilterState.from_query_string(CATALOG, "category=2&type=course&priceRange=0-100000")

    state.clear()

    assert state.to_query_string() == ""
    assert state.get("sortBy") == "newest"


def test_every_change_bumps_generation():
    state = FilterState(BLOG)
    start = state.generation

    state.set("search", "manasik")
    state.set_page(2)
    state.clear()

    assert state.generation == start + 3


def test_listing_page_counts_pages():
    assert ListingPage(items=[], total=12, page=1, per_page=9).total_pages == 2
    assert ListingPage(items=[], total=0, page=1, per_page=9).total_pages == 0
    assert ListingPage(items=[1, 2], total=2).total_pages == 1


def test_view_drops_stale_response():
    state = FilterState(BLOG)
    view = ListingView(state)

    old_generation = state.generation
    state.set("search", "haji")
    new_generation = state.generation

    fresh = ListingPage(items=["haji"], total=1)
    stale = ListingPage(items=["a", "b", "c"], total=3)

    assert view.apply(new_generation, Result.ok(fresh)) is True
    assert view.apply(old_generation, Result.ok(stale)) is False
    assert view.page is fresh


def test_async_refresh_discards_result_superseded_mid_flight():
    state = FilterState(BLOG)
    view = ListingView(state)

    async def slow_fetch(current):
        # Filter changes while the request is in flight
        current.set("category", "3")
        return Result.ok(ListingPage(items=["old"], total=1))

    async def fetch(current):
        return Result.ok(ListingPage(items=["new"], total=1))

    assert asyncio.run(view.refresh_async(slow_fetch)) is False
    assert view.page is None

    assert asyncio.run(view.refresh_async(fetch)) is True
    assert view.page.items == ["new"]


def test_view_keeps_error_alongside_default():
    view = ListingView(FilterState(BLOG))

    view.refresh(lambda state: Result.failed(RuntimeError("db down"), ListingPage(items=[], total=0)))

    assert view.error == "db down"
    assert view.page.total == 0
