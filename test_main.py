#!/usr/bin/env python3
"""
harvest() wiring with the browser session replaced by a fake page.
"""
import json

import pytest

import listing_harvest.__main__ as cli
from harvest_fixtures import FakePage, hashtag_identity, section_blob
from listing_harvest.browser import PageDriver
from listing_harvest.config import READY_SELECTORS, HarvestConfig

CFG = HarvestConfig(scroll_wait_ms=10, initial_settle_ms=5, stall_threshold=2, first_data_timeout_s=0.1)
HASHTAG_URL = "https://www.instagram.com/explore/tags/surf/"


def _hashtag_html():
    shared = {"entry_data": {"recent": section_blob([1, 2]), "top": section_blob([3])}}
    return f"<html><head><script>window._sharedData = {json.dumps(shared)};</script></head></html>"


class FakeSession:
    def __init__(self, cfg):
        self.page = FakePage(selectors={READY_SELECTORS["hashtag"]}, html=_hashtag_html())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def open(self, url):
        return self.page.content()


class ClosedPageDriver(PageDriver):
    def advance(self):
        raise RuntimeError("Target page, context or browser has been closed")


def test_harvest_writes_queue_for_stub_listing(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "BrowserSession", FakeSession)
    queue_path = tmp_path / "queue" / "surf.txt"
    n = cli.harvest(HASHTAG_URL, hashtag_identity(limit=10), CFG, tmp_path / "out.jsonl", queue_path)
    assert n == 3
    assert queue_path.read_text(encoding="utf-8").split() == [
        "https://www.instagram.com/p/code1",
        "https://www.instagram.com/p/code2",
        "https://www.instagram.com/p/code3",
    ]


def test_harvest_keeps_queued_stubs_when_run_fails(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "BrowserSession", FakeSession)
    monkeypatch.setattr(cli, "PageDriver", ClosedPageDriver)
    queue_path = tmp_path / "queue" / "surf.txt"
    with pytest.raises(RuntimeError):
        cli.harvest(HASHTAG_URL, hashtag_identity(limit=10), CFG, tmp_path / "out.jsonl", queue_path)
    assert len(queue_path.read_text(encoding="utf-8").split()) == 3
