"""
Per-listing pagination loop.

AWAITING_FIRST_DATA -> ACTIVE -> TERMINATED. The coordinator seeds the listing
from the embedded page payload (or waits for the first intercepted response),
then scrolls until the continuation policy says stop. Responses arriving while
the driver settles are handled by the ResponseCorrelator.

The driver is any object with::

    ensure_ready(identity)            raises PageNotReadyError when the page never shows up
    listing_available(identity)       False when nothing may be collected (private profile)
    scroll_allowed(identity, state)   False when the page cannot be paged without login etc.
    advance()                         one scroll step
    settle(ms)                        wait, letting the page deliver responses
    wait_for(event, timeout_s)        wait until event is set; returns event.is_set()
"""
from __future__ import annotations

from typing import Optional

from .config import HarvestConfig
from .continuation import should_continue
from .correlator import ResponseCorrelator
from .data_models import ListingIdentity, ListingState, Phase
from .parsing import parse_entry_data
from .state import ListingStateStore


class FirstDataTimeout(RuntimeError):
    pass


class PageNotReadyError(RuntimeError):
    pass


class PaginationCoordinator:
    def __init__(self, store: ListingStateStore, correlator: ResponseCorrelator, driver,
                 config: Optional[HarvestConfig] = None):
        self.store = store
        self.correlator = correlator
        self.driver = driver
        self.config = config or HarvestConfig()

    def _log(self, identity: ListingIdentity, msg: str):
        print(f"[harvest] {identity.tag} {msg}")

    def run(self, identity: ListingIdentity, entry_data=None, additional_data=None) -> ListingState:
        state = self.store.get(identity)
        self.store.set_phase(identity, Phase.AWAITING_FIRST_DATA)

        self.driver.ensure_ready(identity)
        if not self.driver.listing_available(identity):
            self._log(identity, "listing not available, finishing without items")
            self.store.set_phase(identity, Phase.TERMINATED)
            return state
        if not self._await_first_data(identity, state, entry_data, additional_data):
            self._log(identity, "page lists no items, finishing")
            self.store.set_phase(identity, Phase.TERMINATED)
            return state

        if not self.driver.scroll_allowed(identity, state):
            self._log(identity, "scrolling not available, collecting initial items and finishing")
            self.store.set_phase(identity, Phase.TERMINATED)
            return state

        self.store.set_phase(identity, Phase.ACTIVE)
        self._drive(identity, state)
        self.store.set_phase(identity, Phase.TERMINATED)
        return state

    def _await_first_data(self, identity: ListingIdentity, state: ListingState, entry_data, additional_data) -> bool:
        """Seed the listing; False when the page embeds a stub grid without any media."""
        timeline = parse_entry_data(identity.kind, entry_data, additional_data)
        if timeline is not None:
            if timeline.needs_enqueue and not timeline.items:
                return False
            self.correlator.ingest(identity, timeline, source="page")
            return True
        if state.first_data.is_set():
            return True
        self._log(identity, "Waiting for initial data to load")
        timeout = self.config.first_data_timeout_s
        if not self.driver.wait_for(state.first_data, timeout):
            self.store.set_phase(identity, Phase.TERMINATED)
            raise FirstDataTimeout(f"{identity.tag} no data arrived within {timeout:.0f}s")
        return True

    def _drive(self, identity: ListingIdentity, state: ListingState):
        wait_ms = identity.scroll_wait_ms or self.config.scroll_wait_ms
        self.driver.settle(self.config.initial_settle_ms)
        steps = 0
        while True:
            go_on, reason = should_continue(identity, state, self.config)
            if not go_on:
                self._log(identity, f"stopping after {steps} scrolls: {reason}")
                return
            before = state.batches
            self.driver.advance()
            self.driver.settle(wait_ms)
            steps += 1
            # Batches update the streak themselves; a quiet step counts here
            if state.batches == before:
                streak = self.store.note_idle_step(identity)
                if self.config.verbose:
                    self._log(identity, f"scroll {steps} brought no response (streak {streak})")
