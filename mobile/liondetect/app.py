"""Headless entrypoint wiring capture, inference and history for the detector."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional

import httpx
import numpy as np
import soundfile as sf

from .audio.accumulator import SampleAccumulator
from .audio.capture import CaptureSource, MicrophoneCapture, to_mono
from .audio.wav import encode_wav
from .config import CONFIG, StreamConfig
from .errors import CaptureError
from .models import DetectionResult, InferenceJob
from .services.detection import build_result
from .services.inference import InferenceClient
from .services.logger import LogBuffer
from .services.scores import parse_scores
from .services.session import StreamSession
from .store.history_store import HistoryLedger
from .store.settings_store import SettingsStore


class LionDetectApp:
    def __init__(
        self,
        base_dir: Path | str | None = None,
        *,
        config: StreamConfig = CONFIG,
        http_client: Optional[httpx.Client] = None,
        on_alert: Optional[Callable[[DetectionResult], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config
        self.base_dir = Path(base_dir or config.data_dir).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.settings_store = SettingsStore(self.base_dir / "settings.json")
        self.logger = LogBuffer(config.log_history)
        self.history = HistoryLedger(config.history_capacity, self.base_dir / "history.json")
        self.api_client = InferenceClient(self.settings_store, timeout=config.request_timeout, client=http_client)
        self.on_alert = on_alert
        self.on_status = on_status
        self.session: StreamSession | None = None

    @property
    def is_streaming(self) -> bool:
        return self.session is not None and self.session.running

    def start_streaming(self, capture: CaptureSource | None = None, **session_kwargs) -> StreamSession:
        if self.session is not None and self.session.running:
            return self.session
        settings = self.settings_store.get()
        capture = capture or MicrophoneCapture(self.config.sample_rate, self.config.channels)
        self.session = StreamSession(
            self.api_client,
            capture,
            self.logger,
            self.history,
            threshold=settings.stream_threshold,
            min_volume=settings.min_volume,
            config=self.config,
            on_alert=self._alert,
            on_status=self.on_status,
            **session_kwargs,
        )
        self.session.start()
        return self.session

    def stop_streaming(self) -> None:
        if self.session is not None:
            self.session.stop()

    def toggle_streaming(self) -> None:
        if self.is_streaming:
            self.stop_streaming()
        else:
            self.start_streaming()

    def classify_clip(self, path: Path | str) -> DetectionResult:
        """Single-clip flow: classify a whole file with the clip threshold."""
        try:
            audio, sample_rate = sf.read(str(path), dtype="float32")
        except (RuntimeError, OSError) as exc:
            raise CaptureError(f"Cannot read {path}: {exc}") from exc
        self.logger.add(f"Classifying {Path(path).name}")
        return self.classify_samples(to_mono(audio), int(sample_rate))

    def classify_samples(self, samples: np.ndarray, sample_rate: int) -> DetectionResult:
        if len(samples) == 0:
            raise CaptureError("No audio captured")
        payload = encode_wav(samples, sample_rate)
        job = InferenceJob(chunk_id=0, payload=payload)
        text = self.api_client.classify(
            payload,
            job=job,
            attempts=self.config.clip_poll_attempts,
            delay=self.config.clip_poll_delay_ms / 1000.0,
        )
        result = build_result(0, parse_scores(text), self.settings_store.get().clip_threshold)
        self.history.push(result)
        self.logger.add(f"Clip result: AI {result.ai_percent:g}% | Real {result.real_percent:g}%")
        if result.is_ai:
            self.logger.add(f"AI audio detected! AI confidence: {result.ai_percent:g}%", level=logging.WARNING)
            self._alert(result)
        return result

    def record_clip(
        self,
        seconds: float | None = None,
        *,
        capture: CaptureSource | None = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> DetectionResult:
        """Record up to ``max_clip_seconds`` and classify the clip."""
        limit = self.config.max_clip_seconds
        seconds = min(seconds or limit, limit)
        capture = capture or MicrophoneCapture(self.config.sample_rate, self.config.channels)
        target = max(1, int(seconds * capture.sample_rate))
        accumulator = SampleAccumulator(capture.sample_rate, seconds)
        failures: list[CaptureError] = []
        failed = threading.Event()

        def _failed(exc: CaptureError) -> None:
            failures.append(exc)
            failed.set()

        self.logger.add(f"Recording clip ({seconds:g}s max)")
        capture.start(accumulator.append, _failed)
        deadline = time.monotonic() + seconds + 5.0
        finished = getattr(capture, "finished", None)
        try:
            while len(accumulator) < target and time.monotonic() < deadline:
                if failed.wait(0.1) or (finished is not None and finished.is_set()):
                    break
                if on_progress:
                    on_progress(min(len(accumulator) / target, 1.0))
        finally:
            capture.stop()
        if failures:
            raise failures[0]
        if on_progress:
            on_progress(1.0)
        return self.classify_samples(accumulator.snapshot_tail(target), capture.sample_rate)

    def close(self) -> None:
        self.stop_streaming()
        self.api_client.close()

    def _alert(self, result: DetectionResult) -> None:
        if self.on_alert:
            self.on_alert(result)


__all__ = ["LionDetectApp"]
