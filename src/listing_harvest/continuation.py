"""
Decides whether a listing is worth another scroll step.
"""
from __future__ import annotations

from datetime import timezone
from typing import Optional, Tuple

from .config import HarvestConfig
from .data_models import ListingIdentity, ListingState


def should_continue(identity: ListingIdentity, state: ListingState,
                    config: Optional[HarvestConfig] = None) -> Tuple[bool, str]:
    """Return (continue?, reason). The reason is empty when scrolling continues."""
    config = config or HarvestConfig()
    with state.lock:
        scraped = len(state.emitted_ids)
        if scraped >= identity.limit:
            return False, f"reached limit {scraped}/{identity.limit}"
        if state.has_next_page is False and not state.needs_enqueue:
            return False, "no more pages"
        if state.no_new_items_streak > config.stall_threshold:
            return False, f"no new items for {state.no_new_items_streak} rounds"
        cutoff = identity.newer_than
        last = state.last_emitted_timestamp
        if identity.kind.is_posts and cutoff is not None and last is not None:
            if cutoff.tzinfo is None:
                cutoff = cutoff.replace(tzinfo=timezone.utc)
            if last < cutoff:
                return False, f"scrolled past {cutoff.isoformat()}"
    return True, ""
