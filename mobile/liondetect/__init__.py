"""Streaming AI-voice detection client."""

__version__ = "0.1.0"
