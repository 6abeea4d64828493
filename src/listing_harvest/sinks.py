"""
Output sink and task queue used by the harvesting CLI.
"""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .data_models import BatchMeta, EnqueueResult


def _json_default(v):
    if isinstance(v, datetime):
        return v.isoformat()
    return str(v)


class JsonlSink:
    """Appends every emitted record as one JSON line."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.count = 0

    def emit(self, records: List[Dict], meta: BatchMeta) -> None:
        if not records:
            return
        with self.path.open("a", encoding="utf-8") as f:
            for rec in records:
                f.write(json.dumps(rec, ensure_ascii=False, default=_json_default) + "\n")
        self.count += len(records)
        print(f"[sink] {meta.label} page={meta.page} +{len(records)} (from position {meta.position_offset + 1}) -> {self.path}")


class MemoryRequestQueue:
    """Insertion-ordered set of URLs waiting for a detail fetch."""

    def __init__(self):
        self._urls: Dict[str, None] = {}

    def add(self, url: str) -> EnqueueResult:
        present = url in self._urls
        if not present:
            self._urls[url] = None
        return EnqueueResult(url=url, was_already_present=present)

    def __len__(self) -> int:
        return len(self._urls)

    @property
    def urls(self) -> List[str]:
        return list(self._urls)

    def dump(self, path: Optional[Path]) -> int:
        if not path or not self._urls:
            return 0
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text("\n".join(self._urls) + "\n", encoding="utf-8")
        return len(self._urls)
