"""Bounded most-recent-first log of detection results."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import List, Optional

from ..models import DetectionResult


class HistoryLedger:
    def __init__(self, capacity: int, path: Optional[Path] = None) -> None:
        self.capacity = max(1, int(capacity))
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data: List[DetectionResult] = self._load()[: self.capacity]

    def push(self, result: DetectionResult) -> None:
        with self._lock:
            self._data.insert(0, result)
            del self._data[self.capacity :]
            self._persist()

    def list(self) -> List[DetectionResult]:
        with self._lock:
            return list(self._data)

    def latest(self) -> Optional[DetectionResult]:
        with self._lock:
            return self._data[0] if self._data else None

    def __len__(self) -> int:
        return len(self._data)

    def _load(self) -> List[DetectionResult]:
        if not self.path or not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return []
        if not isinstance(raw, list):
            return []
        return [DetectionResult.from_dict(item) for item in raw if isinstance(item, dict)]

    def _persist(self) -> None:
        if not self.path:
            return
        payload = [item.to_dict() for item in self._data]
        self.path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")


__all__ = ["HistoryLedger"]
