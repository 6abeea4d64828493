"""
Filtering of parsed items against what a listing already emitted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .data_models import ListingIdentity
from .parsing import item_id
from .state import ListingStateStore


@dataclass
class FilterResult:
    # (position, raw item) pairs, positions are 1-based and contiguous across the run
    ready: List[Tuple[int, Dict[str, Any]]] = field(default_factory=list)
    new_count: int = 0
    position_offset: int = 0
    all_duplicates: bool = False
    reached_limit: bool = False


def filter_new(store: ListingStateStore, identity: ListingIdentity, items) -> FilterResult:
    """Keep only items whose id has not been emitted yet and record them.

    Positions continue from the number of ids emitted before this batch, so
    skipped duplicates never leave holes. The batch is cut off once the
    listing limit is reached.
    """
    state = store.get(identity)
    with state.lock:
        offset = len(state.emitted_ids)
        result = FilterResult(position_offset=offset)
        for item in items or []:
            if len(state.emitted_ids) >= identity.limit:
                result.reached_limit = True
                break
            iid = item_id(item)
            if iid is None or iid in state.emitted_ids:
                continue
            state.emitted_ids.add(iid)
            result.new_count += 1
            result.ready.append((offset + result.new_count, item))
        if len(state.emitted_ids) >= identity.limit:
            result.reached_limit = True

        result.all_duplicates = result.new_count == 0
        state.all_duplicates = result.all_duplicates
        if result.all_duplicates:
            state.no_new_items_streak += 1
        else:
            state.no_new_items_streak = 0
        state.batches += 1
    return result
