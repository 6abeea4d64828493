"""
Parsing of listing snapshots from embedded page data and GraphQL responses.

Every listing kind has one variant parser that turns a GraphQL-shaped blob into
a Timeline. Blobs from the initial page load are first mapped to that shape by
the entry-data readers. Nothing in here raises on malformed input; unknown
shapes produce an empty Timeline (or None for entry data).
"""
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from .data_models import ListingKind, Timeline

SHARED_DATA_PREFIX = "window._sharedData"
ADDITIONAL_DATA_RE = re.compile(
    r"window\.__additionalDataLoaded\(\s*(['\"]).*?\1\s*,\s*(\{.*\})\s*\)\s*;?\s*$",
    re.DOTALL,
)


def _dig(data: Any, *path) -> Any:
    cur = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(cur, list) or len(cur) <= key:
                return None
            cur = cur[key]
        else:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(key)
        if cur is None:
            return None
    return cur


def _to_int(v) -> Optional[int]:
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _media_grid_items(sections) -> List[Dict[str, Any]]:
    """Flatten section-based layouts into their media objects."""
    items: List[Dict[str, Any]] = []
    for section in sections or []:
        if not isinstance(section, dict) or section.get("layout_type") != "media_grid":
            continue
        for m in _dig(section, "layout_content", "medias") or []:
            media = m.get("media") if isinstance(m, dict) else None
            if isinstance(media, dict):
                items.append(media)
    return items


def _timeline_from_edges(edge_block, reverse: bool = False, count_default_to_len: bool = False) -> Timeline:
    if not isinstance(edge_block, dict):
        return Timeline.empty()
    edges = [e for e in (edge_block.get("edges") or []) if isinstance(e, dict)]
    if reverse:
        edges = list(reversed(edges))
    count = _to_int(edge_block.get("count"))
    if count is None and count_default_to_len:
        count = len(edges)
    return Timeline(
        items=edges,
        total_count_hint=count,
        has_next_page=bool(_dig(edge_block, "page_info", "has_next_page")),
    )


# ---------------- Variant parsers ---------------- #
def _parse_comments(data: Dict[str, Any]) -> Timeline:
    # Some responses wrap the payload once more in "data"
    if isinstance(data.get("data"), dict):
        data = data["data"]
    block = _dig(data, "shortcode_media", "edge_media_to_parent_comment")
    # Comments come newest first; output must be chronological
    return _timeline_from_edges(block, reverse=True)


def _parse_profile(data: Dict[str, Any]) -> Timeline:
    block = _dig(data, "user", "edge_owner_to_timeline_media")
    return _timeline_from_edges(block, count_default_to_len=True)


def _sections_or(primary, data: Dict[str, Any]) -> Timeline:
    if isinstance(primary, dict):
        return _timeline_from_edges(primary, count_default_to_len=True)
    if not isinstance(data.get("sections"), list):
        return Timeline.empty()
    items = _media_grid_items(data["sections"])
    return Timeline(items=items, total_count_hint=len(items), has_next_page=False)


def _parse_hashtag(data: Dict[str, Any]) -> Timeline:
    return _sections_or(_dig(data, "hashtag", "edge_hashtag_to_media"), data)


def _parse_place(data: Dict[str, Any]) -> Timeline:
    return _sections_or(_dig(data, "location", "edge_location_to_media"), data)


VARIANT_PARSERS: Dict[ListingKind, Callable[[Dict[str, Any]], Timeline]] = {
    ListingKind.POST_COMMENTS: _parse_comments,
    ListingKind.PROFILE_POSTS: _parse_profile,
    ListingKind.HASHTAG_POSTS: _parse_hashtag,
    ListingKind.PLACE_POSTS: _parse_place,
}


def parse_timeline(kind, blob) -> Timeline:
    """Parse a GraphQL-shaped blob into a Timeline for the given listing kind."""
    kind = ListingKind.parse(kind)
    if not isinstance(blob, dict):
        return Timeline.empty()
    try:
        timeline = VARIANT_PARSERS[kind](blob)
    except Exception:
        return Timeline.empty()
    timeline.needs_enqueue = bool(blob.get("needsEnqueue", False))
    return timeline


# ---------------- Entry data (initial page load) ---------------- #
def _entry_comments(entry: Dict[str, Any], additional: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _dig(entry, "PostPage", 0, "graphql") or _dig(additional, "graphql")


def _entry_profile(entry: Dict[str, Any], additional: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _dig(entry, "ProfilePage", 0, "graphql") or _dig(additional, "graphql")


def _entry_hashtag(entry: Dict[str, Any], additional: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    graphql = _dig(entry, "TagPage", 0, "graphql")
    if graphql:
        return graphql
    if "recent" not in entry and "top" not in entry:
        return None
    sections = list(_dig(entry, "recent", "sections") or []) + list(_dig(entry, "top", "sections") or [])
    return {"sections": sections, "needsEnqueue": True}


def _entry_place(entry: Dict[str, Any], additional: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    graphql = _dig(entry, "LocationsPage", 0, "graphql")
    if graphql:
        return graphql
    native = _dig(entry, "LocationsPage", 0, "native_location_data") or {}
    if "sections" not in entry and not native:
        return None
    sections = (
        list(entry.get("sections") or [])
        + list(_dig(native, "ranked", "sections") or [])
        + list(_dig(native, "recent", "sections") or [])
    )
    return {"sections": sections, "needsEnqueue": True}


ENTRY_READERS = {
    ListingKind.POST_COMMENTS: _entry_comments,
    ListingKind.PROFILE_POSTS: _entry_profile,
    ListingKind.HASHTAG_POSTS: _entry_hashtag,
    ListingKind.PLACE_POSTS: _entry_place,
}


def parse_entry_data(kind, entry_data, additional_data=None) -> Optional[Timeline]:
    """Map the embedded page payload to a Timeline, or None when it holds no listing.

    An embedded section layout with no media comes back as an empty stub
    Timeline (needs_enqueue set), not None.
    """
    kind = ListingKind.parse(kind)
    entry = entry_data if isinstance(entry_data, dict) else {}
    additional = additional_data if isinstance(additional_data, dict) else {}
    if not entry and not additional:
        return None
    blob = ENTRY_READERS[kind](entry, additional)
    if not blob:
        return None
    timeline = parse_timeline(kind, blob)
    if not timeline.recognized:
        return None
    # A stub grid without media is still an answer: the listing is empty
    return timeline


def extract_page_data(html: str) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """Pull (entry_data, additional_data) out of the initial page HTML."""
    if not html:
        return None, None
    soup = BeautifulSoup(html, "html.parser")
    entry_data = None
    additional_data = None
    for script in soup.find_all("script"):
        text = (script.string or script.get_text() or "").strip()
        if not text:
            continue
        if entry_data is None and text.startswith(SHARED_DATA_PREFIX):
            raw = text.split("=", 1)[1].strip().rstrip(";")
            try:
                shared = json.loads(raw)
            except ValueError:
                continue
            entry_data = shared.get("entry_data") if isinstance(shared, dict) else None
        elif additional_data is None and text.startswith("window.__additionalDataLoaded"):
            m = ADDITIONAL_DATA_RE.search(text)
            if not m:
                continue
            try:
                additional_data = json.loads(m.group(2))
            except ValueError:
                continue
    return entry_data, additional_data


# ---------------- Item accessors ---------------- #
def _item_body(item: Dict[str, Any]) -> Dict[str, Any]:
    if isinstance(item, dict) and isinstance(item.get("node"), dict):
        return item["node"]
    return item if isinstance(item, dict) else {}


def item_id(item) -> Optional[str]:
    body = _item_body(item)
    v = body.get("id") or body.get("pk")
    return str(v) if v not in (None, "") else None


def item_timestamp(item) -> Optional[datetime]:
    body = _item_body(item)
    for key in ("created_at", "taken_at_timestamp", "taken_at"):
        ts = _to_int(body.get(key))
        if ts is not None:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
    return None


def item_shortcode(item) -> Optional[str]:
    body = _item_body(item)
    return body.get("shortcode") or body.get("code")
