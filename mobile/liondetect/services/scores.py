"""Extract AI / real percentages from the classifier's free-text answer."""

from __future__ import annotations

import re
from dataclasses import dataclass

_AI_PATTERN = re.compile(r"AI Generated[^0-9]*(\d+\.?\d*)%", re.IGNORECASE)
_REAL_PATTERN = re.compile(r"Real Voice[^0-9]*(\d+\.?\d*)%", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Scores:
    ai_percent: float = 0.0
    real_percent: float = 0.0


def parse_scores(text: str | None) -> Scores:
    """Missing labels score 0; never raises."""
    if not text:
        return Scores()
    return Scores(ai_percent=_match(_AI_PATTERN, text), real_percent=_match(_REAL_PATTERN, text))


def _match(pattern: re.Pattern[str], text: str) -> float:
    found = pattern.search(text)
    if not found:
        return 0.0
    try:
        return float(found.group(1))
    except ValueError:
        return 0.0


__all__ = ["Scores", "parse_scores"]
