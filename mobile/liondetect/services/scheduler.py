"""Timer-driven chunk extraction with a single in-flight inference job."""

from __future__ import annotations

import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from ..audio.accumulator import SampleAccumulator
from ..audio.types import ChunkWindow
from ..audio.wav import encode_wav, rms_volume
from ..config import CONFIG, StreamConfig
from ..errors import BufferingError, InferenceError, JobCancelledError, QuietAudioError
from ..models import DetectionResult, InferenceJob
from .detection import build_result
from .inference import InferenceClient
from .logger import LogBuffer
from .metrics import CHUNK_COUNTER, INFERENCE_LATENCY
from .scores import parse_scores

LOGGER = logging.getLogger("liondetect.scheduler")

Runner = Callable[[Callable[[], None]], Optional[threading.Thread]]


def spawn_thread(task: Callable[[], None]) -> threading.Thread:
    thread = threading.Thread(target=task, daemon=True)
    thread.start()
    return thread


class ChunkScheduler:
    """Reads the accumulator tail on every tick and dispatches at most one job.

    A tick is skipped while a job is outstanding or while fewer than
    ``min_chunk_interval_ms`` have passed since the last dispatch, so chunk
    ids are assigned and answered strictly in order. Skipped ticks are
    dropped, not queued. Ticks never raise; chunk-level failures only change
    :attr:`status`.
    """

    def __init__(
        self,
        accumulator: SampleAccumulator,
        client: InferenceClient,
        logger: LogBuffer,
        on_result: Callable[[DetectionResult], None],
        *,
        threshold: float = CONFIG.stream_ai_threshold,
        min_volume: float = CONFIG.min_volume,
        config: StreamConfig = CONFIG,
        clock: Callable[[], float] = time.monotonic,
        runner: Runner = spawn_thread,
        on_status: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.accumulator = accumulator
        self.client = client
        self.logger = logger
        self.on_result = on_result
        self.threshold = threshold
        self.min_volume = min_volume
        self.sample_rate = accumulator.sample_rate
        self.chunk_samples = max(1, math.ceil(config.chunk_seconds * self.sample_rate))
        self.interval = config.stream_interval_ms / 1000.0
        self.min_interval = config.min_chunk_interval_ms / 1000.0
        self.poll_attempts = config.stream_poll_attempts
        self.poll_delay = config.stream_poll_delay_ms / 1000.0
        self.on_status = on_status
        self._clock = clock
        self._runner = runner
        self._lock = threading.RLock()
        self._apply_lock = threading.RLock()
        self._worker: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False
        self._in_flight: InferenceJob | None = None
        self._last_dispatch: float | None = None
        self._next_chunk_id = 1
        self._status = "Idle"

    @property
    def status(self) -> str:
        return self._status

    @property
    def in_flight(self) -> Optional[InferenceJob]:
        return self._in_flight

    @property
    def running(self) -> bool:
        return self._running

    def start(self, *, background: bool = True) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._in_flight = None
            self._last_dispatch = None
            self._next_chunk_id = 1
            self._stop_event.clear()
        self._set_status("Listening")
        if background:
            self._thread = threading.Thread(target=self._loop, daemon=True)
            self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)
        self._thread = None
        with self._lock:
            self._running = False
            job, self._in_flight = self._in_flight, None
            if job is not None:
                job.cancel()
                self.logger.add(f"Chunk {job.chunk_id} cancelled")
            worker, self._worker = self._worker, None
        # Wait out a result that was already being applied when the job was cancelled.
        with self._apply_lock:
            pass
        if worker and worker is not threading.current_thread():
            worker.join(timeout=2)
        self._set_status("Stopped")

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.tick()

    def tick(self) -> Optional[InferenceJob]:
        """Run one scheduling step; returns the dispatched job, if any."""
        try:
            job = self._prepare()
        except BufferingError as exc:
            CHUNK_COUNTER.labels(outcome="buffering").inc()
            self._set_status(str(exc))
            return None
        except QuietAudioError as exc:
            CHUNK_COUNTER.labels(outcome="quiet").inc()
            self._set_status(str(exc))
            return None
        except Exception as exc:
            LOGGER.exception("Scheduler tick failed")
            self._set_status(f"Error: {exc}")
            return None
        if job is None:
            return None
        CHUNK_COUNTER.labels(outcome="dispatched").inc()
        self._set_status(f"Analyzing chunk {job.chunk_id}")
        handle = self._runner(lambda: self._process(job))
        if isinstance(handle, threading.Thread):
            with self._lock:
                if self._running:
                    self._worker = handle
        return job

    def _prepare(self) -> Optional[InferenceJob]:
        with self._lock:
            if not self._running:
                return None
            if self._in_flight is not None:
                CHUNK_COUNTER.labels(outcome="busy").inc()
                return None
            now = self._clock()
            if self._last_dispatch is not None and now - self._last_dispatch < self.min_interval:
                return None
            samples = self.accumulator.snapshot_tail(self.chunk_samples)
            if len(samples) < self.chunk_samples:
                raise BufferingError(
                    f"Buffering audio ({len(samples) / self.sample_rate:.1f}s / "
                    f"{self.chunk_samples / self.sample_rate:.1f}s)"
                )
            volume = rms_volume(samples)
            if not math.isfinite(volume) or volume < self.min_volume:
                raise QuietAudioError(f"Too quiet (volume {volume:.4f})")
            window = ChunkWindow(
                chunk_id=self._next_chunk_id,
                samples=samples,
                sample_rate=self.sample_rate,
                captured_at=datetime.now(timezone.utc),
            )
            job = InferenceJob(chunk_id=window.chunk_id, payload=encode_wav(window.samples, self.sample_rate))
            self._next_chunk_id += 1
            self._in_flight = job
            self._last_dispatch = now
            return job

    def _process(self, job: InferenceJob) -> None:
        started = time.perf_counter()
        result: DetectionResult | None = None
        outcome = "failed"
        try:
            text = self.client.classify(job.payload, job=job, attempts=self.poll_attempts, delay=self.poll_delay)
            result = build_result(job.chunk_id, parse_scores(text), self.threshold)
            outcome = "completed"
        except JobCancelledError:
            outcome = "cancelled"
        except InferenceError as exc:
            self.logger.add(f"Chunk {job.chunk_id} dropped: {exc}", level=logging.WARNING)
            self._set_status(f"Chunk {job.chunk_id} failed: {exc}")
        except Exception as exc:
            LOGGER.exception("Chunk %s processing failed", job.chunk_id)
            self._set_status(f"Chunk {job.chunk_id} failed: {exc}")
        finally:
            INFERENCE_LATENCY.observe(time.perf_counter() - started)
        with self._lock:
            if self._in_flight is job:
                self._in_flight = None
            if job.cancelled or not self._running:
                outcome = "cancelled"
                result = None
            CHUNK_COUNTER.labels(outcome=outcome).inc()
        if result is None:
            return
        # Callbacks run outside the scheduling lock so ticks and stop() never wait on them.
        with self._apply_lock:
            if job.cancelled:
                return
            self._set_status(
                f"Chunk {result.chunk_id}: AI {result.ai_percent:g}% / Real {result.real_percent:g}%"
            )
            self.on_result(result)

    def _set_status(self, status: str) -> None:
        self._status = status
        if self.on_status:
            self.on_status(status)


__all__ = ["ChunkScheduler", "spawn_thread"]
