"""
Builders and fakes shared by the test modules.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from listing_harvest.browser import PlaywrightTimeoutError
from listing_harvest.data_models import ListingIdentity, ListingKind

COMMENTS_URL = "https://www.instagram.com/graphql/query/?query_hash=abc&variables=%7B%22shortcode%22%3A%22XYZ%22%2C%22first%22%3A12%7D"
PROFILE_URL = "https://www.instagram.com/graphql/query/?query_hash=def&variables=%7B%22id%22%3A%2242%22%2C%22first%22%3A12%7D"


def comment_edge(cid, ts=1600000000, text=None):
    return {"node": {
        "id": str(cid),
        "text": text or f"comment {cid}",
        "created_at": ts,
        "owner": {"id": "7", "is_verified": False, "username": "someone", "profile_pic_url": "https://x/p.jpg"},
    }}


def post_edge(pid, ts=1600000000, code=None):
    return {"node": {
        "id": str(pid),
        "__typename": "GraphImage",
        "shortcode": code or f"code{pid}",
        "taken_at_timestamp": ts,
        "display_url": f"https://x/{pid}.jpg",
        "edge_media_to_caption": {"edges": [{"node": {"text": f"caption {pid}"}}]},
        "edge_media_to_comment": {"count": 3},
        "edge_media_preview_like": {"count": 10},
        "owner": {"id": "42", "username": "nasa"},
    }}


def comments_blob(ids: List, has_next=True, count=None, ts_base=1600000000):
    # Source order is newest first
    edges = [comment_edge(i, ts_base + int(i)) for i in ids]
    return {"shortcode_media": {"edge_media_to_parent_comment": {
        "count": count if count is not None else len(ids),
        "page_info": {"has_next_page": has_next, "end_cursor": "c"},
        "edges": edges,
    }}}


def profile_blob(ids: List, has_next=True, count=None, ts_base=1600000000):
    edges = [post_edge(i, ts_base - int(i)) for i in ids]
    return {"user": {"edge_owner_to_timeline_media": {
        "count": count if count is not None else 100,
        "page_info": {"has_next_page": has_next},
        "edges": edges,
    }}}


def section_blob(ids: List):
    medias = [{"media": {"id": str(i), "code": f"code{i}", "taken_at": 1600000000}} for i in ids]
    return {"sections": [
        {"layout_type": "media_grid", "layout_content": {"medias": medias}},
        {"layout_type": "one_by_two_item", "layout_content": {}},
    ]}


def comments_identity(limit=100, **kw) -> ListingIdentity:
    return ListingIdentity(kind=ListingKind.POST_COMMENTS, owner_id="XYZ", limit=limit, **kw)


def profile_identity(limit=100, **kw) -> ListingIdentity:
    return ListingIdentity(kind=ListingKind.PROFILE_POSTS, owner_id="42", limit=limit, username="nasa", **kw)


def hashtag_identity(limit=100, **kw) -> ListingIdentity:
    return ListingIdentity(kind=ListingKind.HASHTAG_POSTS, owner_id="surf", limit=limit, tag_name="surf", **kw)


class ListSink:
    def __init__(self):
        self.calls = []

    def emit(self, records, meta):
        self.calls.append((list(records), meta))

    @property
    def records(self) -> List[Dict]:
        return [r for recs, _ in self.calls for r in recs]


class FakeDriver:
    """Replays scripted responses: one list of (url, status, body) per scroll step."""

    def __init__(self, correlator, identity, steps: Optional[List[List[tuple]]] = None,
                 on_wait: Optional[List[tuple]] = None, allowed: bool = True,
                 available: bool = True):
        self.correlator = correlator
        self.identity = identity
        self.steps = list(steps or [])
        self.on_wait = list(on_wait or [])
        self.allowed = allowed
        self.available = available
        self.advances = 0
        self.settles = []
        self.ready_checked = False
        self._pending: List[tuple] = []

    def _deliver(self, responses):
        for url, status, body in responses:
            self.correlator.on_response(self.identity, url, status, body)

    def ensure_ready(self, identity):
        self.ready_checked = True

    def listing_available(self, identity):
        return self.available

    def scroll_allowed(self, identity, state=None):
        return self.allowed

    def advance(self):
        self.advances += 1
        self._pending = self.steps.pop(0) if self.steps else []

    def settle(self, wait_ms):
        self.settles.append(wait_ms)
        pending, self._pending = self._pending, []
        self._deliver(pending)

    def wait_for(self, event, timeout_s):
        self._deliver(self.on_wait)
        self.on_wait = []
        return event.is_set()


class FakeMouse:
    def __init__(self):
        self.wheels = []

    def wheel(self, dx, dy):
        self.wheels.append((dx, dy))


class FakePage:
    """Stands in for a Playwright page: present selectors, the grid heading, scroll counts."""

    def __init__(self, selectors=(), heading: Optional[str] = None, html: str = "",
                 broken_scroll: bool = False, on_wait=None):
        self.selectors = set(selectors)
        self.heading = heading
        self.html = html
        self.broken_scroll = broken_scroll
        self.on_wait = on_wait
        self.scrolls = 0
        self.waits: List[int] = []
        self.listeners: Dict[str, list] = {}
        self.mouse = FakeMouse()

    def wait_for_selector(self, selector, timeout=None):
        if selector not in self.selectors:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return selector

    def query_selector(self, selector):
        return selector if selector in self.selectors else None

    def evaluate(self, script):
        if "scrollTo" in script:
            if self.broken_scroll:
                raise RuntimeError("Execution context was destroyed")
            self.scrolls += 1
            return None
        if "article > h2" in script:
            return self.heading == "Most recent"
        return None

    def wait_for_timeout(self, ms):
        self.waits.append(ms)
        if self.on_wait:
            self.on_wait()

    def on(self, event, callback):
        self.listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event, callback):
        self.listeners.get(event, []).remove(callback)

    def content(self):
        return self.html
