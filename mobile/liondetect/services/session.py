"""Recording session lifecycle: capture, scheduling and detection state."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..audio.accumulator import SampleAccumulator
from ..audio.capture import CaptureSource
from ..config import CONFIG, StreamConfig
from ..errors import CaptureError
from ..models import DetectionResult, Transition
from ..store.history_store import HistoryLedger
from .detection import DetectionStateMachine
from .inference import InferenceClient
from .logger import LogBuffer
from .metrics import ALERT_COUNTER
from .scheduler import ChunkScheduler, Runner, spawn_thread


class StreamSession:
    """Owns the session-scoped buffer, scheduler and hysteresis state.

    ``start`` and ``stop`` raise :class:`CaptureError` when the capture
    collaborator fails. A failure reported later by the capture thread stops
    scheduling and is passed to ``on_error``; ``stop`` still has to be called
    to release the device.
    """

    def __init__(
        self,
        client: InferenceClient,
        capture: CaptureSource,
        logger: LogBuffer,
        history: HistoryLedger,
        *,
        threshold: float = CONFIG.stream_ai_threshold,
        min_volume: float = CONFIG.min_volume,
        config: StreamConfig = CONFIG,
        on_alert: Optional[Callable[[DetectionResult], None]] = None,
        on_result: Optional[Callable[[DetectionResult], None]] = None,
        on_error: Optional[Callable[[CaptureError], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
        runner: Runner = spawn_thread,
        background: bool = True,
    ) -> None:
        self.client = client
        self.capture = capture
        self.logger = logger
        self.history = history
        self.threshold = threshold
        self.min_volume = min_volume
        self.config = config
        self.on_alert = on_alert
        self.on_result = on_result
        self.on_error = on_error
        self.on_status = on_status
        self.error: CaptureError | None = None
        self._runner = runner
        self._background = background
        self._capture_open = False
        self.accumulator: SampleAccumulator | None = None
        self.scheduler: ChunkScheduler | None = None
        self.detector = DetectionStateMachine(on_rising=self._on_rising, on_falling=self._on_falling)

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    @property
    def status(self) -> str:
        if self.error is not None:
            return f"Capture failed: {self.error}"
        return self.scheduler.status if self.scheduler else "Idle"

    def start(self) -> None:
        if self.running or self._capture_open:
            return
        self.error = None
        sample_rate = self.capture.sample_rate
        buffer_seconds = max(self.config.buffer_seconds, self.config.chunk_seconds)
        self.accumulator = SampleAccumulator(sample_rate, buffer_seconds)
        self.detector.reset()
        self.scheduler = ChunkScheduler(
            self.accumulator,
            self.client,
            self.logger,
            self._handle_result,
            threshold=self.threshold,
            min_volume=self.min_volume,
            config=self.config,
            runner=self._runner,
            on_status=self.on_status,
        )
        self.capture.start(self.accumulator.append, self._capture_failed)
        self._capture_open = True
        self.scheduler.start(background=self._background)
        self.logger.add(f"Streaming started ({sample_rate} Hz, {self.config.chunk_seconds:g}s chunks)")

    def stop(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.stop()
        if not self._capture_open:
            return
        self._capture_open = False
        try:
            self.capture.stop()
        finally:
            self.logger.add("Streaming stopped")

    def _capture_failed(self, exc: CaptureError) -> None:
        self.error = exc
        self.logger.add(f"Capture failed: {exc}", level=logging.ERROR)
        if self.scheduler is not None:
            self.scheduler.stop()
        if self.on_error:
            self.on_error(exc)

    def _handle_result(self, result: DetectionResult) -> None:
        self.history.push(result)
        verdict = "AI" if result.is_ai else "real"
        self.logger.add(
            f"Chunk {result.chunk_id}: {verdict} (AI {result.ai_percent:g}%, Real {result.real_percent:g}%)"
        )
        self.detector.observe(result)
        if self.on_result:
            self.on_result(result)

    def _on_rising(self, transition: Transition) -> None:
        ALERT_COUNTER.labels(edge="rising").inc()
        self.logger.add(f"AI audio detected! AI confidence: {transition.result.ai_percent:g}%", level=logging.WARNING)
        if self.on_alert:
            self.on_alert(transition.result)

    def _on_falling(self, transition: Transition) -> None:
        ALERT_COUNTER.labels(edge="falling").inc()
        self.logger.add(f"Detection ended after {transition.consecutive_count} AI chunk(s)")


__all__ = ["StreamSession"]
