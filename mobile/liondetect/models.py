"""Dataclasses describing chunk jobs and detection results."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class JobStatus(str, Enum):
    UPLOADING = "uploading"
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed-out"
    CANCELLED = "cancelled"


class Edge(str, Enum):
    RISING = "rising"
    FALLING = "falling"


@dataclass(slots=True)
class InferenceJob:
    """One remote round trip for a single chunk."""

    chunk_id: int
    payload: bytes
    uploaded_path: Optional[str] = None
    event_id: Optional[str] = None
    status: JobStatus = JobStatus.UPLOADING
    _cancel: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self._cancel.set()
        if self.status not in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.TIMED_OUT):
            self.status = JobStatus.CANCELLED

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep between poll attempts; returns True if cancelled meanwhile."""
        return self._cancel.wait(timeout=seconds)


@dataclass(frozen=True, slots=True)
class DetectionResult:
    chunk_id: int
    ai_percent: float
    real_percent: float
    is_ai: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunk_id": self.chunk_id,
            "ai_percent": self.ai_percent,
            "real_percent": self.real_percent,
            "is_ai": self.is_ai,
            "timestamp": self.timestamp.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DetectionResult":
        stamp = str(raw.get("timestamp") or "").replace("Z", "+00:00")
        try:
            timestamp = datetime.fromisoformat(stamp)
        except ValueError:
            timestamp = datetime.now(timezone.utc)
        return cls(
            chunk_id=int(raw.get("chunk_id", 0)),
            ai_percent=float(raw.get("ai_percent", 0.0)),
            real_percent=float(raw.get("real_percent", 0.0)),
            is_ai=bool(raw.get("is_ai", False)),
            timestamp=timestamp,
        )


@dataclass(slots=True)
class DetectionEventState:
    active: bool = False
    consecutive_count: int = 0


@dataclass(frozen=True, slots=True)
class Transition:
    edge: Edge
    result: DetectionResult
    consecutive_count: int


__all__ = [
    "DetectionEventState",
    "DetectionResult",
    "Edge",
    "InferenceJob",
    "JobStatus",
    "Transition",
]
