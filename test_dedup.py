#!/usr/bin/env python3
"""
Dedup filter tests: no repeats, contiguous positions, limit cut-off, streaks.
"""
from harvest_fixtures import comment_edge, comments_blob, comments_identity
from listing_harvest.data_models import ListingIdentity
from listing_harvest.dedup import filter_new
from listing_harvest.parsing import item_id, parse_timeline
from listing_harvest.state import ListingStateStore


def _ids(result):
    return [item_id(item) for _, item in result.ready]


def _positions(result):
    return [pos for pos, _ in result.ready]


def test_reversed_comment_batch_gets_positions_in_order():
    store = ListingStateStore()
    ident = comments_identity()
    tl = parse_timeline("comments", comments_blob([3, 2, 1]))
    res = filter_new(store, ident, tl.items)
    assert _ids(res) == ["1", "2", "3"]
    assert _positions(res) == [1, 2, 3]
    assert res.position_offset == 0


def test_overlapping_batches_are_gap_free_and_unique():
    store = ListingStateStore()
    ident = comments_identity()
    emitted = []
    batches = [[1, 2, 3], [2, 3, 4, 5], [5, 1], [6, 4, 7]]
    for batch in batches:
        res = filter_new(store, ident, [comment_edge(i) for i in batch])
        emitted.extend(res.ready)
    ids = [item_id(item) for _, item in emitted]
    assert ids == ["1", "2", "3", "4", "5", "6", "7"]
    assert [pos for pos, _ in emitted] == list(range(1, 8))
    assert store.get(ident).emitted_ids == set(ids)


def test_repeats_inside_one_batch_are_dropped():
    store = ListingStateStore()
    ident = comments_identity()
    res = filter_new(store, ident, [comment_edge(1), comment_edge(1), comment_edge(2)])
    assert _ids(res) == ["1", "2"]
    assert _positions(res) == [1, 2]


def test_items_without_id_are_skipped():
    store = ListingStateStore()
    res = filter_new(store, comments_identity(), [{"node": {"text": "no id"}}, comment_edge(9)])
    assert _ids(res) == ["9"]
    assert _positions(res) == [1]


def test_batch_is_cut_at_limit():
    store = ListingStateStore()
    ident = comments_identity(limit=4)
    first = filter_new(store, ident, [comment_edge(i) for i in (1, 2, 3)])
    second = filter_new(store, ident, [comment_edge(i) for i in (4, 5, 6)])
    assert _ids(first) == ["1", "2", "3"]
    assert not first.reached_limit
    assert _ids(second) == ["4"]
    assert second.reached_limit
    assert len(store.get(ident).emitted_ids) == 4


def test_all_duplicate_batches_grow_streak_and_new_items_reset_it():
    store = ListingStateStore()
    ident = comments_identity()
    filter_new(store, ident, [comment_edge(1)])
    state = store.get(ident)
    assert state.all_duplicates is False
    assert state.no_new_items_streak == 0

    for n in range(1, 4):
        res = filter_new(store, ident, [comment_edge(1)])
        assert res.all_duplicates
        assert state.no_new_items_streak == n

    filter_new(store, ident, [comment_edge(2)])
    assert state.all_duplicates is False
    assert state.no_new_items_streak == 0


def test_listings_do_not_share_state():
    store = ListingStateStore()
    a = comments_identity()
    b = ListingIdentity(kind=a.kind, owner_id="OTHER", limit=10)
    filter_new(store, a, [comment_edge(1)])
    res = filter_new(store, b, [comment_edge(1)])
    assert _ids(res) == ["1"]
    assert _positions(res) == [1]
    assert len(store) == 2
