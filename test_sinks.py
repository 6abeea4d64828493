#!/usr/bin/env python3
"""
Sink and queue tests.
"""
import json
from datetime import datetime, timezone

from listing_harvest.data_models import BatchMeta
from listing_harvest.sinks import JsonlSink, MemoryRequestQueue


def test_jsonl_sink_appends_records(tmp_path):
    out = tmp_path / "nested" / "comments.jsonl"
    sink = JsonlSink(out)
    ts = datetime(2020, 9, 13, tzinfo=timezone.utc)
    sink.emit([{"id": "1", "position": 1, "timestamp": ts}], BatchMeta("comment", 1, 0))
    sink.emit([], BatchMeta("comment", 2, 1))
    sink.emit([{"id": "2", "position": 2, "timestamp": None}], BatchMeta("comment", 3, 1))
    lines = out.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["id"] for line in lines] == ["1", "2"]
    assert json.loads(lines[0])["timestamp"] == ts.isoformat()
    assert sink.count == 2


def test_request_queue_reports_known_urls(tmp_path):
    q = MemoryRequestQueue()
    assert q.add("https://www.instagram.com/p/a").was_already_present is False
    assert q.add("https://www.instagram.com/p/a").was_already_present is True
    q.add("https://www.instagram.com/p/b")
    assert len(q) == 2
    dest = tmp_path / "queue.txt"
    assert q.dump(dest) == 2
    assert dest.read_text(encoding="utf-8").split() == q.urls
    assert q.dump(None) == 0
