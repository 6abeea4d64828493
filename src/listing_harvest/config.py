"""
Configuration defaults for listing harvesting.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_5_0) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_LIMIT = 50

# Scrolling tuning
DEFAULT_SCROLL_WAIT_MS = 3000
DEFAULT_INITIAL_SETTLE_MS = 1500
# Consecutive "nothing new" observations tolerated before giving up on a page
DEFAULT_STALL_THRESHOLD = 3

# First data may come from either the embedded page payload or a response
DEFAULT_FIRST_DATA_TIMEOUT_S = 60.0
DEFAULT_FIRST_DATA_POLL_MS = 100

# Readiness selectors per listing kind (value of ListingKind)
READY_SELECTORS = {
    "comments": ".EtaWk",
    "profile": ".ySN3v",
    "hashtag": ".EZdmt",
    "place": ".EZdmt",
}
READY_TIMEOUTS_MS = {
    "comments": 15000,
    "profile": 5000,
    "hashtag": 25000,
    "place": 25000,
}
PRIVATE_PROFILE_SELECTOR = ".rkEop"

# Query-string markers of GraphQL pagination requests
PAGINATION_MARKER = "%22first%22"
CHECKED_VARIABLES = {
    "comments": "%22shortcode%22",
    "profile": "%22id%22",
    "hashtag": "%22tag_name%22",
    "place": "%22id%22",
}

POST_URL_BASE = "https://www.instagram.com/p/"

# Connectivity check before navigating
INTERNET_CHECK_URL = "https://www.google.com/generate_204"
INTERNET_CHECK_INTERVAL = 5.0


@dataclass
class HarvestConfig:
    headless: bool = True
    proxy_server: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    user_agent: str = DEFAULT_UA
    disable_images: bool = True
    # Pagination
    scroll_wait_ms: int = DEFAULT_SCROLL_WAIT_MS
    initial_settle_ms: int = DEFAULT_INITIAL_SETTLE_MS
    stall_threshold: int = DEFAULT_STALL_THRESHOLD
    first_data_timeout_s: float = DEFAULT_FIRST_DATA_TIMEOUT_S
    first_data_poll_ms: int = DEFAULT_FIRST_DATA_POLL_MS
    # Connectivity
    wait_for_internet: bool = True
    internet_check_url: str = INTERNET_CHECK_URL
    internet_check_interval: float = INTERNET_CHECK_INTERVAL
    verbose: bool = False

    @classmethod
    def from_env(cls, **overrides) -> "HarvestConfig":
        cfg = cls(proxy_server=os.getenv("PROXY_SERVER") or None)
        for k, v in overrides.items():
            if v is not None and hasattr(cfg, k):
                setattr(cfg, k, v)
        return cfg
