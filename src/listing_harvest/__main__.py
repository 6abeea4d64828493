#!/usr/bin/env python3
"""
Harvest one paginated listing (post comments or a post grid) from an
infinite-scroll page.

Usage examples:
  python3 -m listing_harvest --url https://www.instagram.com/p/CODE/ --kind comments --owner-id CODE --limit 200
  python3 -m listing_harvest --url https://www.instagram.com/nasa/ --kind profile --owner-id 528817151 --username nasa
  python3 -m listing_harvest --url https://www.instagram.com/explore/tags/surf/ --kind hashtag --owner-id surf \
      --tag surf --enqueue-out output/queue/surf.txt

Output:
  Records are appended as JSON lines to --out (default output/listings/<kind>_<owner>.jsonl).
  Stub listings (section layouts) write the post URLs to fetch into --enqueue-out.
"""
from __future__ import annotations

import argparse
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from .browser import BrowserSession, PageDriver, ResponseFeed
from .config import DEFAULT_LIMIT, HarvestConfig
from .coordinator import FirstDataTimeout, PageNotReadyError, PaginationCoordinator
from .correlator import ResponseCorrelator
from .data_models import ListingIdentity, ListingKind, UnsupportedListingKind
from .parsing import extract_page_data
from .sinks import JsonlSink, MemoryRequestQueue
from .state import ListingStateStore


def _parse_date(s: str) -> datetime:
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def harvest(url: str, identity: ListingIdentity, cfg: HarvestConfig, out_path: Path,
            enqueue_path: Path = None) -> int:
    store = ListingStateStore()
    sink = JsonlSink(out_path)
    queue = MemoryRequestQueue()
    correlator = ResponseCorrelator(store, sink, cfg, enqueuer=queue)
    try:
        with BrowserSession(cfg) as session:
            # Listen before navigating so responses fired during load are not lost
            feed = ResponseFeed(session.page, correlator, identity).attach()
            try:
                html = session.open(url)
                entry_data, additional_data = extract_page_data(html)
                coordinator = PaginationCoordinator(store, correlator, PageDriver(session.page, cfg), cfg)
                state = coordinator.run(identity, entry_data, additional_data)
            finally:
                feed.detach()
    finally:
        # Queued stubs are written out even when the run fails
        saved = queue.dump(enqueue_path)
        if saved:
            print(f"[harvest] {identity.tag} queued {saved} post urls -> {enqueue_path}")
    print(f"[harvest] {identity.tag} done: {state.emitted_count} items, last timestamp {state.last_emitted_timestamp}")
    return state.emitted_count


def main():
    ap = argparse.ArgumentParser(description="Harvest a paginated listing from an infinite-scroll page")
    ap.add_argument("--url", required=True, help="Page URL to open")
    ap.add_argument("--kind", required=True, help="comments | profile | hashtag | place")
    ap.add_argument("--owner-id", required=True, help="Post shortcode, user id, tag name or location id")
    ap.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Max items to collect")
    ap.add_argument("--scroll-wait-ms", type=int, default=None, help="Settle delay after each scroll")
    ap.add_argument("--tag", type=str, default=None, help="Echoed as queryTag on post records")
    ap.add_argument("--username", type=str, default=None, help="Echoed as queryUsername on post records")
    ap.add_argument("--location", type=str, default=None, help="Echoed as queryLocation on post records")
    ap.add_argument("--logged-in", action="store_true", help="Session carries login cookies")
    ap.add_argument("--newer-than", type=str, default=None, help="Stop scrolling posts older than this ISO date")
    ap.add_argument("--out", type=str, default=None, help="JSONL output path")
    ap.add_argument("--enqueue-out", type=str, default=None, help="Where to write queued post URLs")
    ap.add_argument("--first-data-timeout", type=float, default=None, help="Seconds to wait for the first data")
    ap.add_argument("--headless", action="store_true", default=True)
    ap.add_argument("--no-headless", dest="headless", action="store_false")
    ap.add_argument("--proxy", type=str, default=os.getenv("PROXY_SERVER") or None)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    try:
        kind = ListingKind.parse(args.kind)
    except UnsupportedListingKind as e:
        ap.error(str(e))
        return

    cfg = HarvestConfig.from_env(
        headless=args.headless,
        proxy_server=args.proxy,
        first_data_timeout_s=args.first_data_timeout,
        verbose=args.verbose,
    )
    identity = ListingIdentity(
        kind=kind,
        owner_id=args.owner_id,
        limit=args.limit,
        scroll_wait_ms=args.scroll_wait_ms,
        tag_name=args.tag,
        username=args.username,
        location_name=args.location,
        logged_in=args.logged_in,
        newer_than=_parse_date(args.newer_than) if args.newer_than else None,
    )
    out_path = Path(args.out or f"output/listings/{kind.value}_{args.owner_id}.jsonl")
    enqueue_path = Path(args.enqueue_out or f"output/queue/{kind.value}_{args.owner_id}.txt")

    try:
        harvest(args.url, identity, cfg, out_path, enqueue_path)
    except (PageNotReadyError, FirstDataTimeout) as e:
        print(f"[harvest] !! {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
