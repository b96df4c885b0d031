"""Error taxonomy shared by the streaming pipeline."""

from __future__ import annotations


class LionDetectError(Exception):
    pass


class ChunkError(LionDetectError):
    """Recoverable at chunk granularity; the session keeps running."""


class BufferingError(ChunkError):
    pass


class QuietAudioError(ChunkError):
    pass


class InferenceError(ChunkError):
    pass


class UploadError(InferenceError):
    pass


class SubmitError(InferenceError):
    pass


class PollTimeoutError(InferenceError):
    pass


class JobCancelledError(InferenceError):
    pass


class CaptureError(LionDetectError):
    """The capture collaborator failed; fatal to the session."""


__all__ = [
    "BufferingError",
    "CaptureError",
    "ChunkError",
    "InferenceError",
    "JobCancelledError",
    "LionDetectError",
    "PollTimeoutError",
    "QuietAudioError",
    "SubmitError",
    "UploadError",
]
