"""Hysteresis over per-chunk verdicts: one alert per sustained detection."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from ..models import DetectionEventState, DetectionResult, Edge, Transition
from .scores import Scores


def is_ai(ai_percent: float, threshold: float) -> bool:
    # Strict: a score equal to the threshold does not count.
    return ai_percent > threshold


def build_result(chunk_id: int, scores: Scores, threshold: float) -> DetectionResult:
    return DetectionResult(
        chunk_id=chunk_id,
        ai_percent=scores.ai_percent,
        real_percent=scores.real_percent,
        is_ai=is_ai(scores.ai_percent, threshold),
    )


class DetectionStateMachine:
    """Idle/Alerting machine driven only by the order of ``is_ai`` verdicts.

    ``on_rising`` fires once when a detection event starts; ``on_falling``
    fires when the first non-AI chunk ends it.
    """

    def __init__(
        self,
        *,
        on_rising: Optional[Callable[[Transition], None]] = None,
        on_falling: Optional[Callable[[Transition], None]] = None,
    ) -> None:
        self.on_rising = on_rising
        self.on_falling = on_falling
        self._state = DetectionEventState()
        self._lock = threading.Lock()

    @property
    def state(self) -> DetectionEventState:
        with self._lock:
            return DetectionEventState(self._state.active, self._state.consecutive_count)

    def reset(self) -> None:
        with self._lock:
            self._state = DetectionEventState()

    def observe(self, result: DetectionResult) -> Optional[Transition]:
        with self._lock:
            transition = None
            if result.is_ai:
                self._state.consecutive_count += 1
                if not self._state.active:
                    self._state.active = True
                    transition = Transition(Edge.RISING, result, self._state.consecutive_count)
            elif self._state.active:
                transition = Transition(Edge.FALLING, result, self._state.consecutive_count)
                self._state = DetectionEventState()
        if transition is None:
            return None
        callback = self.on_rising if transition.edge is Edge.RISING else self.on_falling
        if callback:
            callback(transition)
        return transition


__all__ = ["DetectionStateMachine", "build_result", "is_ai"]
