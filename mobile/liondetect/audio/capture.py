"""Capture sources feeding float samples into the accumulator."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Protocol

import numpy as np
import soundfile as sf

from ..errors import CaptureError

LOGGER = logging.getLogger("liondetect.capture")

SampleSink = Callable[[np.ndarray], None]
ErrorSink = Callable[[CaptureError], None]


class CaptureSource(Protocol):
    sample_rate: int

    def start(self, on_samples: SampleSink, on_error: ErrorSink | None = None) -> None: ...

    def stop(self) -> None: ...


def to_mono(data: np.ndarray) -> np.ndarray:
    data = np.asarray(data, dtype=np.float32)
    if data.ndim == 1:
        return data
    return data.mean(axis=1).astype(np.float32, copy=False)


class MicrophoneCapture:
    """Live capture through a ``sounddevice.InputStream`` callback."""

    def __init__(self, sample_rate: int, channels: int = 1, *, device: int | str | None = None) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device
        self._stream = None
        self._sd = self._try_import_sounddevice()

    def _try_import_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore

            return sd
        except (ImportError, OSError):
            return None

    def start(self, on_samples: SampleSink, on_error: ErrorSink | None = None) -> None:
        if self._stream is not None:
            return
        if self._sd is None:
            raise CaptureError("sounddevice is not available; install the 'mic' extra")

        def _callback(indata, frames, time_info, status) -> None:  # noqa: ARG001
            if status:
                LOGGER.debug("input stream status: %s", status)
            on_samples(to_mono(indata).copy())

        try:
            stream = self._sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="float32",
                device=self.device,
                callback=_callback,
                finished_callback=lambda: self._finished(on_error),
            )
            stream.start()
        except Exception as exc:
            raise CaptureError(f"Microphone start failed: {exc}") from exc
        self._stream = stream

    def _finished(self, on_error: ErrorSink | None) -> None:
        # Fires after stop() too; only an unrequested finish is a failure.
        if self._stream is not None and on_error:
            on_error(CaptureError("Microphone stream ended unexpectedly"))

    def stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as exc:
            raise CaptureError(f"Microphone stop failed: {exc}") from exc


class FileCapture:
    """Replays an audio file block by block, paced like a live source."""

    def __init__(self, path: Path | str, *, block_seconds: float = 0.1, realtime: bool = True) -> None:
        self.path = Path(path)
        self.block_seconds = block_seconds
        self.realtime = realtime
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self.finished = threading.Event()
        try:
            self.sample_rate = int(sf.info(str(self.path)).samplerate)
        except (RuntimeError, OSError) as exc:
            raise CaptureError(f"Cannot open {self.path}: {exc}") from exc

    def start(self, on_samples: SampleSink, on_error: ErrorSink | None = None) -> None:
        if self._thread and self._thread.is_alive():
            return
        try:
            audio, _ = sf.read(str(self.path), dtype="float32")
        except (RuntimeError, OSError) as exc:
            raise CaptureError(f"Cannot read {self.path}: {exc}") from exc
        mono = to_mono(audio)
        self._stop.clear()
        self.finished.clear()
        self._thread = threading.Thread(target=self._feed, args=(mono, on_samples, on_error), daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)

    def _feed(self, mono: np.ndarray, on_samples: SampleSink, on_error: Optional[ErrorSink]) -> None:
        block = max(1, int(self.sample_rate * self.block_seconds))
        try:
            for offset in range(0, len(mono), block):
                if self._stop.is_set():
                    return
                on_samples(mono[offset : offset + block])
                if self.realtime and self._stop.wait(self.block_seconds):
                    return
        except Exception as exc:
            LOGGER.error("File capture failed: %s", exc)
            if on_error:
                on_error(CaptureError(str(exc)))
        finally:
            self.finished.set()


__all__ = ["CaptureSource", "FileCapture", "MicrophoneCapture", "to_mono"]
