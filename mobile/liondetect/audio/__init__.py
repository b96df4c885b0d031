"""Audio capture, buffering and WAV encoding."""

from .accumulator import SampleAccumulator
from .wav import encode_wav, rms_volume

__all__ = ["SampleAccumulator", "encode_wav", "rms_volume"]
