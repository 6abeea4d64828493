"""
Dataclasses for listing harvesting.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple


class UnsupportedListingKind(ValueError):
    pass


class ListingKind(str, Enum):
    POST_COMMENTS = "comments"
    PROFILE_POSTS = "profile"
    HASHTAG_POSTS = "hashtag"
    PLACE_POSTS = "place"

    @classmethod
    def parse(cls, value) -> "ListingKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedListingKind(f"Listing kind {value!r} is not supported") from None

    @property
    def is_posts(self) -> bool:
        return self is not ListingKind.POST_COMMENTS

    @property
    def label(self) -> str:
        return "comment" if self is ListingKind.POST_COMMENTS else "post"


class Phase(str, Enum):
    AWAITING_FIRST_DATA = "awaiting_first_data"
    ACTIVE = "active"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class ListingIdentity:
    kind: ListingKind
    owner_id: str
    limit: int
    scroll_wait_ms: Optional[int] = None
    # Echoed into post records
    tag_name: Optional[str] = None
    username: Optional[str] = None
    location_name: Optional[str] = None
    logged_in: bool = False
    newer_than: Optional[datetime] = None
    request_data: Tuple[Tuple[str, Any], ...] = ()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.kind.value, str(self.owner_id))

    @property
    def tag(self) -> str:
        return f"{self.kind.value}:{self.owner_id}"

    def user_data(self) -> Dict[str, Any]:
        return dict(self.request_data)

    def debug_info(self) -> Dict[str, Any]:
        info = {
            "kind": self.kind.value,
            "ownerId": self.owner_id,
            "limit": self.limit,
        }
        if self.tag_name:
            info["tagName"] = self.tag_name
        if self.username:
            info["userUsername"] = self.username
        if self.location_name:
            info["locationName"] = self.location_name
        return info


@dataclass
class Timeline:
    items: List[Dict[str, Any]] = field(default_factory=list)
    total_count_hint: Optional[int] = None
    has_next_page: bool = False
    needs_enqueue: bool = False
    # False when the blob had none of the shapes this kind understands
    recognized: bool = True

    @classmethod
    def empty(cls) -> "Timeline":
        return cls(recognized=False)


@dataclass
class ListingState:
    emitted_ids: Set[str] = field(default_factory=set)
    all_duplicates: bool = False
    last_emitted_timestamp: Optional[datetime] = None
    no_new_items_streak: int = 0
    has_next_page: Optional[bool] = None
    total_count_hint: Optional[int] = None
    needs_enqueue: bool = False
    batches: int = 0
    phase: Phase = Phase.AWAITING_FIRST_DATA
    first_data: threading.Event = field(default_factory=threading.Event, repr=False)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def emitted_count(self) -> int:
        return len(self.emitted_ids)


@dataclass
class BatchMeta:
    label: str
    page: int
    position_offset: int


@dataclass
class EnqueueResult:
    url: str
    was_already_present: bool
