"""
Playwright plumbing: browser session, page driver and response feed.

Everything here sits at the boundary of the harvester. The session owns the
browser lifecycle, PageDriver scrolls one page for the coordinator, and
ResponseFeed pushes intercepted responses into the ResponseCorrelator.
"""
from __future__ import annotations

import random
import threading
import time
from typing import Optional

import requests

from .config import (
    PRIVATE_PROFILE_SELECTOR,
    READY_SELECTORS,
    READY_TIMEOUTS_MS,
    HarvestConfig,
)
from .coordinator import PageNotReadyError
from .data_models import ListingIdentity, ListingKind, ListingState

# We import Playwright lazily to allow parser-only tests without it installed
try:
    from playwright.sync_api import sync_playwright, TimeoutError as PlaywrightTimeoutError
except Exception:  # pragma: no cover - only triggered if playwright missing
    sync_playwright = None
    PlaywrightTimeoutError = Exception


class BrowserSession:
    def __init__(self, config: Optional[HarvestConfig] = None):
        self.config = config or HarvestConfig.from_env()
        self._pw = None
        self._browser = None
        self._context = None
        self.page = None

    # ------------------------- Browser lifecycle ------------------------- #
    def start(self):
        if sync_playwright is None:
            raise RuntimeError(
                "Playwright is not installed. Run: pip install -e . && playwright install chromium"
            )
        self._pw = sync_playwright().start()
        launch_kwargs = {
            "headless": self.config.headless,
            "args": [
                "--disable-blink-features=AutomationControlled",
                "--no-sandbox",
                "--disable-dev-shm-usage",
            ],
        }
        if self.config.proxy_server:
            launch_kwargs["proxy"] = {"server": self.config.proxy_server}
        self._browser = self._pw.chromium.launch(**launch_kwargs)
        self._new_context()
        return self

    def _new_context(self):
        self._context = self._browser.new_context(
            user_agent=self.config.user_agent,
            locale="en-US",
            viewport={"width": random.randint(1280, 1440), "height": random.randint(800, 900)},
        )
        if self.config.disable_images:
            def block_images(route):
                if route.request.resource_type in ["image", "media", "imageset"]:
                    route.abort()
                else:
                    route.continue_()

            self._context.route("**/*", block_images)
        try:
            self._context.set_default_timeout(self.config.timeout_ms)
        except Exception:
            pass
        self.page = self._context.new_page()
        self._apply_stealth(self.page)

    def _apply_stealth(self, page):
        evasions = [
            "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});",
            "Object.defineProperty(navigator, 'languages', {get: () => ['en-US','en']});",
            "Object.defineProperty(navigator, 'platform', {get: () => 'MacIntel'});",
            "window.chrome = window.chrome || { runtime: {} };",
        ]
        for js in evasions:
            try:
                page.add_init_script(js)
            except Exception:
                pass

    def stop(self):
        for attr in ["page", "_context", "_browser"]:
            try:
                obj = getattr(self, attr, None)
                if obj:
                    obj.close()
            except Exception:
                pass
        try:
            if self._pw:
                self._pw.stop()
        except Exception:
            pass

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    # ------------------------- Connectivity ------------------------- #
    def _check_internet_connectivity(self) -> bool:
        try:
            response = requests.get(
                self.config.internet_check_url,
                timeout=5.0,
                headers={"User-Agent": "Mozilla/5.0 (compatible; ConnectivityCheck)"},
            )
            return response.status_code == 204 or 200 <= response.status_code < 300
        except requests.exceptions.RequestException:
            return False

    def wait_for_internet_connection(self, max_wait_cycles: int = 360):
        if not self.config.wait_for_internet:
            return
        if self._check_internet_connectivity():
            return
        print(f"[internet] No internet connection detected. Will check every {self.config.internet_check_interval}s...")
        for _ in range(max_wait_cycles):
            time.sleep(self.config.internet_check_interval)
            if self._check_internet_connectivity():
                print("[internet] Internet connection restored. Continuing...")
                return
        print("[internet] Gave up waiting for internet connection")

    def open(self, url: str) -> str:
        """Navigate and return the initial HTML."""
        self.wait_for_internet_connection()
        self.page.goto(url, wait_until="domcontentloaded", timeout=self.config.timeout_ms)
        return self.page.content()


class PageDriver:
    """Drive primitive the coordinator uses to page through one listing."""

    def __init__(self, page, config: Optional[HarvestConfig] = None):
        self.page = page
        self.config = config or HarvestConfig()

    def ensure_ready(self, identity: ListingIdentity):
        kind = identity.kind.value
        try:
            self.page.wait_for_selector(READY_SELECTORS[kind], timeout=READY_TIMEOUTS_MS[kind])
        except PlaywrightTimeoutError:
            raise PageNotReadyError(f"{identity.tag} page didn't load properly, opening again") from None

    def listing_available(self, identity: ListingIdentity) -> bool:
        if identity.kind is ListingKind.PROFILE_POSTS:
            if self.page.query_selector(PRIVATE_PROFILE_SELECTOR):
                print(f"[harvest] {identity.tag} profile is private")
                return False
        return True

    def scroll_allowed(self, identity: ListingIdentity, state: Optional[ListingState] = None) -> bool:
        if identity.kind is ListingKind.PLACE_POSTS and not identity.logged_in:
            # Places only page further under login
            return False
        # Stub grids keep scrolling until the limit; only the paged grid needs the heading
        if identity.kind is ListingKind.HASHTAG_POSTS and not (state is not None and state.needs_enqueue):
            try:
                return bool(self.page.evaluate(
                    "() => { const h = document.querySelector('article > h2');"
                    " return h !== null && h.textContent === 'Most recent'; }"
                ))
            except Exception:
                return False
        return True

    def advance(self):
        try:
            self.page.evaluate("window.scrollTo({ top: document.body.scrollHeight })")
            self.page.wait_for_timeout(200)
            # Step back a little so the grid sentinel re-enters the viewport
            self.page.evaluate("window.scrollTo({ top: document.body.scrollHeight * 0.70 })")
        except Exception:
            try:
                self.page.mouse.wheel(0, 1600)
            except Exception:
                pass

    def settle(self, wait_ms: int):
        jitter = int(wait_ms * random.uniform(0.85, 1.15))
        self.page.wait_for_timeout(jitter)

    def wait_for(self, event: threading.Event, timeout_s: float) -> bool:
        # Response callbacks only run while Playwright is waiting, so pump in slices
        deadline = time.monotonic() + timeout_s
        while not event.is_set() and time.monotonic() < deadline:
            self.page.wait_for_timeout(self.config.first_data_poll_ms)
        return event.is_set()


class ResponseFeed:
    """Forwards page responses of one listing to the correlator."""

    def __init__(self, page, correlator, identity: ListingIdentity):
        self.page = page
        self.correlator = correlator
        self.identity = identity
        self.attached = False

    def _on_response(self, response):
        url = response.url
        if not self.correlator.matches(self.identity, url):
            return
        self.correlator.on_response(self.identity, url, response.status, response.json)

    def attach(self):
        if not self.attached:
            self.page.on("response", self._on_response)
            self.attached = True
        return self

    def detach(self):
        if self.attached:
            try:
                self.page.remove_listener("response", self._on_response)
            except Exception:
                pass
            self.attached = False
