"""Persistent user settings for the detector endpoint and thresholds."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import CONFIG


def _clamped(value: Any, fallback: float, upper: float) -> float:
    try:
        return min(max(float(value), 0.0), upper)
    except (TypeError, ValueError):
        return fallback


def _percent(value: Any, fallback: float) -> float:
    return _clamped(value, fallback, 100.0)


@dataclass(slots=True)
class AppSettings:
    server_url: str = ""
    api_token: str = ""
    stream_threshold: float = CONFIG.stream_ai_threshold
    clip_threshold: float = CONFIG.clip_ai_threshold
    min_volume: float = CONFIG.min_volume

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server_url": self.server_url,
            "api_token": self.api_token,
            "stream_threshold": self.stream_threshold,
            "clip_threshold": self.clip_threshold,
            "min_volume": self.min_volume,
        }


class SettingsStore:
    """JSON-backed settings; thresholds are percentages, volume an RMS in [0, 1]."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._settings = self._load()

    def _load(self) -> AppSettings:
        defaults = AppSettings()
        if not self.path.exists():
            return defaults
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return defaults
        if not isinstance(raw, dict):
            return defaults
        return AppSettings(
            server_url=str(raw.get("server_url") or ""),
            api_token=str(raw.get("api_token") or ""),
            stream_threshold=_percent(raw.get("stream_threshold"), defaults.stream_threshold),
            clip_threshold=_percent(raw.get("clip_threshold"), defaults.clip_threshold),
            min_volume=_clamped(raw.get("min_volume"), defaults.min_volume, 1.0),
        )

    def get(self) -> AppSettings:
        return self._settings

    def update(
        self,
        *,
        server_url: Optional[str] = None,
        api_token: Optional[str] = None,
        stream_threshold: Optional[float] = None,
        clip_threshold: Optional[float] = None,
        min_volume: Optional[float] = None,
    ) -> AppSettings:
        settings = self._settings
        if server_url is not None:
            settings.server_url = server_url.strip().rstrip("/")
        if api_token is not None:
            settings.api_token = api_token.strip()
        if stream_threshold is not None:
            settings.stream_threshold = _percent(stream_threshold, settings.stream_threshold)
        if clip_threshold is not None:
            settings.clip_threshold = _percent(clip_threshold, settings.clip_threshold)
        if min_volume is not None:
            settings.min_volume = _clamped(min_volume, settings.min_volume, 1.0)
        self._persist()
        return settings

    def _persist(self) -> None:
        self.path.write_text(json.dumps(self._settings.to_dict()), encoding="utf-8")
