"""
Run-scoped table of pagination state, one entry per listing.
"""
from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional, Tuple

from .data_models import ListingIdentity, ListingState, Phase


class ListingStateStore:
    """Owns every ListingState of a harvesting run.

    Entries are created on first observation and kept until the store itself
    is dropped. Callers mutate a state only while holding ``state.lock``.
    """

    def __init__(self):
        self._states: Dict[Tuple[str, str], ListingState] = {}
        self._guard = threading.Lock()

    def get(self, identity: ListingIdentity) -> ListingState:
        with self._guard:
            state = self._states.get(identity.key)
            if state is None:
                state = ListingState()
                self._states[identity.key] = state
            return state

    def peek(self, identity: ListingIdentity) -> Optional[ListingState]:
        with self._guard:
            return self._states.get(identity.key)

    def __contains__(self, identity: ListingIdentity) -> bool:
        return self.peek(identity) is not None

    def __len__(self) -> int:
        with self._guard:
            return len(self._states)

    def items(self) -> Iterator[Tuple[Tuple[str, str], ListingState]]:
        with self._guard:
            snapshot = list(self._states.items())
        return iter(snapshot)

    def observe_has_next(self, identity: ListingIdentity, has_next: bool) -> bool:
        """Reconcile a reported has-more flag; once False it stays False."""
        state = self.get(identity)
        with state.lock:
            if state.has_next_page is None:
                state.has_next_page = bool(has_next)
            elif state.has_next_page and not has_next:
                state.has_next_page = False
            return state.has_next_page

    def note_idle_step(self, identity: ListingIdentity) -> int:
        """Record a drive step that produced no new items."""
        state = self.get(identity)
        with state.lock:
            state.no_new_items_streak += 1
            return state.no_new_items_streak

    def set_phase(self, identity: ListingIdentity, phase: Phase) -> None:
        state = self.get(identity)
        with state.lock:
            state.phase = phase

    def clear(self) -> None:
        with self._guard:
            self._states.clear()
