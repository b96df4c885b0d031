"""PCM16 WAV encoding for float sample windows."""

from __future__ import annotations

import struct

import numpy as np

HEADER_SIZE = 44
_PCM_FORMAT = 1
_BITS_PER_SAMPLE = 16


def encode_wav(samples, sample_rate: int) -> bytes:
    """Return a canonical mono 16-bit RIFF/WAVE buffer for ``samples``.

    Samples are clamped to [-1, 1], scaled by 32767 and truncated toward zero.
    NaN encodes as silence.
    """
    data = np.nan_to_num(np.asarray(samples, dtype=np.float64).reshape(-1), nan=0.0, posinf=1.0, neginf=-1.0)
    data = np.clip(data, -1.0, 1.0)
    pcm = (data * 32767).astype("<i2")
    body = pcm.tobytes()
    channels = 1
    block_align = channels * _BITS_PER_SAMPLE // 8
    byte_rate = sample_rate * block_align
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + len(body),
        b"WAVE",
        b"fmt ",
        16,
        _PCM_FORMAT,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        _BITS_PER_SAMPLE,
        b"data",
        len(body),
    )
    return header + body


def rms_volume(samples) -> float:
    data = np.asarray(samples, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(data))))


__all__ = ["HEADER_SIZE", "encode_wav", "rms_volume"]
