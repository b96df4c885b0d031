"""Streaming detector configuration resolved from the environment."""

from __future__ import annotations

import math
import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_SERVER_URL = "https://pauliano22-deepfake-audio-detector.hf.space/gradio_api"


def _env(name: str, default: str) -> str:
    return os.getenv(f"LION_{name}", default)


class StreamConfig(BaseModel):
    server_url: str = Field(default=_env("SERVER_URL", DEFAULT_SERVER_URL))
    data_dir: str = Field(default=_env("DATA_DIR", str(Path.home() / ".liondetect")))
    sample_rate: int = Field(default=int(_env("SAMPLE_RATE", "22050")))
    channels: int = Field(default=int(_env("CHANNELS", "1")))
    chunk_seconds: float = Field(default=float(_env("CHUNK_SECONDS", "2.0")))
    stream_interval_ms: int = Field(default=int(_env("STREAM_INTERVAL_MS", "250")))
    min_chunk_interval_ms: int = Field(default=int(_env("MIN_CHUNK_INTERVAL_MS", "1000")))
    buffer_seconds: float = Field(default=float(_env("BUFFER_SECONDS", "10.0")))
    min_volume: float = Field(default=float(_env("MIN_VOLUME", "0.01")))
    stream_ai_threshold: float = Field(default=float(_env("STREAM_AI_THRESHOLD", "30")))
    clip_ai_threshold: float = Field(default=float(_env("CLIP_AI_THRESHOLD", "50")))
    stream_poll_attempts: int = Field(default=int(_env("STREAM_POLL_ATTEMPTS", "10")))
    stream_poll_delay_ms: int = Field(default=int(_env("STREAM_POLL_DELAY_MS", "200")))
    clip_poll_attempts: int = Field(default=int(_env("CLIP_POLL_ATTEMPTS", "30")))
    clip_poll_delay_ms: int = Field(default=int(_env("CLIP_POLL_DELAY_MS", "1000")))
    history_capacity: int = Field(default=int(_env("HISTORY_CAPACITY", "20")))
    log_history: int = Field(default=int(_env("LOG_HISTORY", "200")))
    max_clip_seconds: float = Field(default=float(_env("MAX_CLIP_SECONDS", "30")))
    request_timeout: float = Field(default=float(_env("REQUEST_TIMEOUT", "15")))

    @property
    def chunk_samples(self) -> int:
        return math.ceil(self.chunk_seconds * self.sample_rate)


@lru_cache()
def get_config() -> StreamConfig:
    return StreamConfig()


CONFIG = get_config()

__all__ = ["CONFIG", "DEFAULT_SERVER_URL", "StreamConfig", "get_config"]
