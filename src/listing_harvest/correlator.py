"""
Correlation of intercepted GraphQL responses with the listing they page through.

Both the embedded first page and every matching response end up in
``ResponseCorrelator.ingest``, which reconciles the has-more flag, filters out
already emitted items and hands the rest to the output sink (or, for stub
listings, to the task queue).
"""
from __future__ import annotations

import json
from typing import Any, Optional

from .config import CHECKED_VARIABLES, PAGINATION_MARKER, HarvestConfig
from .data_models import BatchMeta, ListingIdentity, Timeline
from .dedup import filter_new
from .formatting import format_record, post_url
from .parsing import item_id, item_shortcode, item_timestamp, parse_timeline
from .state import ListingStateStore


def _decode_body(body) -> Optional[dict]:
    if callable(body):
        try:
            body = body()
        except Exception:
            return None
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except ValueError:
            return None
    return body if isinstance(body, dict) else None


class ResponseCorrelator:
    def __init__(self, store: ListingStateStore, sink, config: Optional[HarvestConfig] = None, enqueuer=None):
        self.store = store
        self.sink = sink
        self.config = config or HarvestConfig()
        self.enqueuer = enqueuer

    def _log(self, identity: ListingIdentity, msg: str):
        print(f"[{identity.kind.label}s] {identity.tag} {msg}")

    def _debug(self, identity: ListingIdentity, msg: str):
        if self.config.verbose:
            self._log(identity, msg)

    def matches(self, identity: ListingIdentity, url: str) -> bool:
        checked = CHECKED_VARIABLES[identity.kind.value]
        return bool(url) and checked in url and PAGINATION_MARKER in url

    def on_response(self, identity: ListingIdentity, url: str, status: int, body: Any) -> int:
        """Handle one intercepted response; returns the number of new items."""
        if not self.matches(identity, url):
            return 0
        if status != 200:
            # Transport errors are retried elsewhere
            self._debug(identity, f"skipping response status={status}")
            return 0
        data = _decode_body(body)
        if data is None:
            self._debug(identity, "skipping undecodable response body")
            return 0
        timeline = parse_timeline(identity.kind, data.get("data"))
        if not timeline.recognized:
            self._debug(identity, "response carried no listing data")
            return 0
        return self.ingest(identity, timeline, source="response")

    def ingest(self, identity: ListingIdentity, timeline: Timeline, source: str = "response") -> int:
        state = self.store.get(identity)
        with state.lock:
            self.store.observe_has_next(identity, timeline.has_next_page)
            if timeline.total_count_hint is not None:
                state.total_count_hint = timeline.total_count_hint
            if timeline.needs_enqueue:
                state.needs_enqueue = True
                added = self._enqueue_stubs(identity, timeline)
            else:
                added = self._emit_batch(identity, timeline)
            state.first_data.set()
            total = state.total_count_hint if state.total_count_hint is not None else "?"
            self._log(
                identity,
                f"{len(timeline.items)} {identity.kind.label}s loaded from {source}, "
                f"{state.emitted_count}/{total} {identity.kind.label}s scraped",
            )
        return added

    def _emit_batch(self, identity: ListingIdentity, timeline: Timeline) -> int:
        state = self.store.get(identity)
        result = filter_new(self.store, identity, timeline.items)
        if not result.ready:
            return 0
        records = [format_record(item, identity, position) for position, item in result.ready]
        # Timestamp of the last emitted item tells how far back the listing was scrolled
        stamps = [item_timestamp(item) for _, item in result.ready]
        stamps = [s for s in stamps if s is not None]
        if stamps:
            state.last_emitted_timestamp = stamps[-1]
        if result.reached_limit:
            self._log(identity, f"reached limit of {identity.limit}")
        self.sink.emit(records, BatchMeta(
            label=identity.kind.label,
            page=state.batches,
            position_offset=result.position_offset,
        ))
        return result.new_count

    def _enqueue_stubs(self, identity: ListingIdentity, timeline: Timeline) -> int:
        state = self.store.get(identity)
        if self.enqueuer is None:
            raise RuntimeError(f"{identity.tag} needs a task queue for stub items")
        new_ids = 0
        enqueued = 0
        for item in timeline.items:
            if len(state.emitted_ids) >= identity.limit:
                break
            iid = item_id(item)
            code = item_shortcode(item)
            if iid is None or not code:
                continue
            res = self.enqueuer.add(post_url(code))
            if not res.was_already_present:
                enqueued += 1
            if iid not in state.emitted_ids:
                state.emitted_ids.add(iid)
                new_ids += 1
        state.all_duplicates = new_ids == 0
        state.no_new_items_streak = state.no_new_items_streak + 1 if new_ids == 0 else 0
        state.batches += 1
        if enqueued:
            self._log(identity, f"Got {enqueued} posts")
        return new_ids
