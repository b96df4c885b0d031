"""Rolling store of captured float samples."""

from __future__ import annotations

import math
import threading
from collections import deque

import numpy as np


class SampleAccumulator:
    """Append-only mono float32 buffer capped at ``max_seconds`` of audio.

    The capture callback appends blocks, the scheduler copies the tail. Blocks
    are kept as separate arrays and only concatenated on read.
    """

    def __init__(self, sample_rate: int, max_seconds: float) -> None:
        self.sample_rate = sample_rate
        self.max_samples = max(1, math.ceil(max_seconds * sample_rate))
        self._blocks: deque[np.ndarray] = deque()
        self._total = 0
        self._lock = threading.Lock()

    def append(self, samples) -> None:
        block = np.asarray(samples, dtype=np.float32).reshape(-1)
        if block.size == 0:
            return
        with self._lock:
            self._blocks.append(block.copy())
            self._total += block.size
            self._trim()

    def snapshot_tail(self, count: int) -> np.ndarray:
        if count <= 0:
            return np.array([], dtype=np.float32)
        with self._lock:
            picked: list[np.ndarray] = []
            needed = count
            for block in reversed(self._blocks):
                if needed <= 0:
                    break
                picked.append(block[-needed:])
                needed -= min(needed, block.size)
        if not picked:
            return np.array([], dtype=np.float32)
        return np.concatenate(picked[::-1]).copy()

    def clear(self) -> None:
        with self._lock:
            self._blocks.clear()
            self._total = 0

    @property
    def duration(self) -> float:
        return len(self) / float(self.sample_rate)

    def __len__(self) -> int:
        with self._lock:
            return self._total

    def _trim(self) -> None:
        overflow = self._total - self.max_samples
        while overflow > 0 and self._blocks:
            head = self._blocks[0]
            if head.size <= overflow:
                self._blocks.popleft()
                self._total -= head.size
                overflow -= head.size
            else:
                self._blocks[0] = head[overflow:]
                self._total -= overflow
                overflow = 0


__all__ = ["SampleAccumulator"]
