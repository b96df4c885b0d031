"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

CHUNK_COUNTER = Counter(
    "liondetect_chunks_total",
    "Scheduler tick outcomes per chunk window",
    labelnames=("outcome",),
)

INFERENCE_LATENCY = Histogram(
    "liondetect_inference_seconds",
    "Upload + submit + poll round trip latency",
    buckets=(0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

ALERT_COUNTER = Counter(
    "liondetect_alerts_total",
    "Detection event edges emitted by the state machine",
    labelnames=("edge",),
)
