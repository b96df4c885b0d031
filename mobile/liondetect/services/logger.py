"""In-memory activity log mirrored to the standard logging module."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from typing import List


class LogBuffer:
    def __init__(self, capacity: int = 200, *, name: str = "liondetect") -> None:
        self._lines: deque[str] = deque(maxlen=max(1, capacity))
        self._lock = threading.Lock()
        self._logger = logging.getLogger(name)

    def add(self, message: str, *, level: int = logging.INFO) -> None:
        self._logger.log(level, message)
        stamp = datetime.now().strftime("%H:%M:%S")
        with self._lock:
            self._lines.append(f"[{stamp}] {message}")

    def get(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()


__all__ = ["LogBuffer"]
