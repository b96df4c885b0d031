"""Pytest configuration helpers."""

from __future__ import annotations

import json
import math
import sys
from pathlib import Path

import httpx
import numpy as np
import pytest
import soundfile as sf


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from mobile.liondetect.services.inference import InferenceClient  # noqa: E402
from mobile.liondetect.store.settings_store import SettingsStore  # noqa: E402

SERVER_URL = "https://lion.example/gradio_api"
AI_TEXT = "AI Generated: 82.5% | Real Voice: 17.5%"
REAL_TEXT = "AI Generated: 10% | Real Voice: 90%"


class FakeGradio:
    """MockTransport handler speaking the upload / call / poll protocol."""

    def __init__(self, results=AI_TEXT, *, pending_polls: int = 0, upload_status: int = 200) -> None:
        self.results = [results] if isinstance(results, str) else list(results)
        self.pending_polls = pending_polls
        self.upload_status = upload_status
        self.calls = {"upload": 0, "submit": 0, "poll": 0}
        self.submitted: list[dict] = []
        self.on_poll = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path.endswith("/upload"):
            self.calls["upload"] += 1
            if self.upload_status != 200:
                return httpx.Response(self.upload_status, text="upload rejected")
            return httpx.Response(200, json=[f"/tmp/gradio/{self.calls['upload']}/audio.wav"])
        if request.method == "POST" and path.endswith("/call/predict"):
            self.calls["submit"] += 1
            self.submitted.append(json.loads(request.content))
            return httpx.Response(200, json={"event_id": f"evt-{self.calls['submit']}"})
        if request.method == "GET" and "/call/predict/" in path:
            self.calls["poll"] += 1
            if self.on_poll:
                self.on_poll()
            if self.calls["poll"] <= self.pending_polls:
                return httpx.Response(200, text="event: heartbeat\ndata: null\n\n")
            index = min(self.calls["submit"], len(self.results)) - 1
            body = f"event: complete\ndata: {json.dumps([self.results[index]])}\n\n"
            return httpx.Response(200, text=body)
        raise AssertionError(f"Unexpected request {request.method} {path}")


def tone(seconds: float, sample_rate: int, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(seconds * sample_rate))
    return (amplitude * np.sin(2 * math.pi * 220 * t / sample_rate)).astype(np.float32)


@pytest.fixture()
def make_client(tmp_path):
    def _make(handler) -> InferenceClient:
        settings = SettingsStore(tmp_path / "settings.json")
        settings.update(server_url=SERVER_URL)
        return InferenceClient(settings, client=httpx.Client(transport=httpx.MockTransport(handler)))

    return _make


@pytest.fixture()
def wav_file(tmp_path) -> Path:
    path = tmp_path / "clip.wav"
    sf.write(str(path), tone(1.0, 8000), 8000, subtype="PCM_16")
    return path
