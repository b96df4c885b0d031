"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import numpy as np


@dataclass(slots=True)
class ChunkWindow:
    """Tail slice of the accumulator submitted as one classification unit."""

    chunk_id: int
    samples: np.ndarray
    sample_rate: int
    captured_at: datetime

    @property
    def duration(self) -> float:
        return len(self.samples) / float(self.sample_rate)
