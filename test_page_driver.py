#!/usr/bin/env python3
"""
PageDriver over a fake page: readiness, entry gates, scrolling and waits.
"""
import threading

import pytest

from harvest_fixtures import (
    FakePage,
    ListSink,
    comments_identity,
    hashtag_identity,
    profile_blob,
    profile_identity,
    section_blob,
)
from listing_harvest.browser import PageDriver
from listing_harvest.config import PRIVATE_PROFILE_SELECTOR, READY_SELECTORS, HarvestConfig
from listing_harvest.coordinator import PageNotReadyError, PaginationCoordinator
from listing_harvest.correlator import ResponseCorrelator
from listing_harvest.data_models import ListingIdentity, ListingKind, Phase
from listing_harvest.sinks import MemoryRequestQueue
from listing_harvest.state import ListingStateStore

CFG = HarvestConfig(scroll_wait_ms=10, initial_settle_ms=5, stall_threshold=2,
                    first_data_timeout_s=0.1, first_data_poll_ms=1)


def place_identity(logged_in=False):
    return ListingIdentity(kind=ListingKind.PLACE_POSTS, owner_id="1", limit=10, logged_in=logged_in)


def test_ensure_ready_waits_for_kind_selector():
    page = FakePage(selectors={READY_SELECTORS["comments"]})
    PageDriver(page, CFG).ensure_ready(comments_identity())


def test_ensure_ready_timeout_becomes_page_not_ready():
    page = FakePage(selectors={READY_SELECTORS["comments"]})
    with pytest.raises(PageNotReadyError):
        PageDriver(page, CFG).ensure_ready(profile_identity())


def test_private_profile_is_not_available():
    page = FakePage(selectors={READY_SELECTORS["profile"], PRIVATE_PROFILE_SELECTOR})
    assert PageDriver(page, CFG).listing_available(profile_identity()) is False
    assert PageDriver(FakePage(), CFG).listing_available(profile_identity()) is True


def test_private_selector_only_matters_for_profiles():
    page = FakePage(selectors={PRIVATE_PROFILE_SELECTOR})
    assert PageDriver(page, CFG).listing_available(comments_identity()) is True


def test_place_scrolls_only_when_logged_in():
    driver = PageDriver(FakePage(), CFG)
    assert driver.scroll_allowed(place_identity(logged_in=False)) is False
    assert driver.scroll_allowed(place_identity(logged_in=True)) is True


@pytest.mark.parametrize("heading,expected", [("Most recent", True), ("Top posts", False), (None, False)])
def test_paged_hashtag_grid_needs_most_recent_heading(heading, expected):
    ident = hashtag_identity()
    state = ListingStateStore().get(ident)
    assert PageDriver(FakePage(heading=heading), CFG).scroll_allowed(ident, state) is expected


def test_stub_hashtag_grid_scrolls_without_heading():
    ident = hashtag_identity()
    state = ListingStateStore().get(ident)
    state.needs_enqueue = True
    assert PageDriver(FakePage(heading=None), CFG).scroll_allowed(ident, state) is True


def test_advance_scrolls_to_bottom_and_back():
    page = FakePage()
    PageDriver(page, CFG).advance()
    assert page.scrolls == 2
    assert page.waits == [200]


def test_advance_falls_back_to_mouse_wheel():
    page = FakePage(broken_scroll=True)
    PageDriver(page, CFG).advance()
    assert page.scrolls == 0
    assert page.mouse.wheels == [(0, 1600)]


def test_settle_jitters_around_requested_wait():
    page = FakePage()
    PageDriver(page, CFG).settle(1000)
    assert 850 <= page.waits[0] <= 1150


def test_wait_for_pumps_page_until_event_is_set():
    event = threading.Event()
    page = FakePage()
    page.on_wait = lambda: len(page.waits) >= 3 and event.set()
    assert PageDriver(page, CFG).wait_for(event, 5.0) is True
    assert page.waits == [CFG.first_data_poll_ms] * 3


def test_wait_for_gives_up_at_deadline():
    page = FakePage()
    assert PageDriver(page, CFG).wait_for(threading.Event(), 0) is False
    assert page.waits == []


def _run(page, ident, entry, enqueuer=None):
    store = ListingStateStore()
    sink = ListSink()
    corr = ResponseCorrelator(store, sink, CFG, enqueuer=enqueuer)
    coord = PaginationCoordinator(store, corr, PageDriver(page, CFG), CFG)
    return sink, coord.run(ident, entry)


def test_section_layout_hashtag_keeps_scrolling():
    page = FakePage(selectors={READY_SELECTORS["hashtag"]}, heading=None)
    queue = MemoryRequestQueue()
    sink, state = _run(page, hashtag_identity(limit=10),
                       {"recent": section_blob([1, 2]), "top": section_blob([3])}, enqueuer=queue)
    assert page.scrolls > 0
    assert len(queue) == 3
    assert state.phase is Phase.TERMINATED


def test_paged_hashtag_without_heading_keeps_initial_batch():
    page = FakePage(selectors={READY_SELECTORS["hashtag"]}, heading="Top posts")
    blob = {"hashtag": {"edge_hashtag_to_media": profile_blob([1, 2])["user"]["edge_owner_to_timeline_media"]}}
    sink, state = _run(page, hashtag_identity(limit=10), {"TagPage": [{"graphql": blob}]})
    assert page.scrolls == 0
    assert [r["id"] for r in sink.records] == ["1", "2"]


def test_private_profile_run_emits_nothing():
    page = FakePage(selectors={READY_SELECTORS["profile"], PRIVATE_PROFILE_SELECTOR})
    entry = {"ProfilePage": [{"graphql": profile_blob([1, 2, 3])}]}
    sink, state = _run(page, profile_identity(), entry)
    assert sink.calls == []
    assert state.emitted_count == 0
    assert page.scrolls == 0
    assert state.phase is Phase.TERMINATED
