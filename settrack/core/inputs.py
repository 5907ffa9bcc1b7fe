"""Text-to-number conversion for set edits."""

from __future__ import annotations

import math

from settrack.core.errors import InputParseError

MAX_WEIGHT = 999.0
MIN_WEIGHT = 0.0
MAX_REPS = 999
MIN_REPS = 1


def _normalize(raw: object) -> str:
    if raw is None:
        raise InputParseError("empty value")
    text = str(raw).strip().replace(",", ".")
    if not text:
        raise InputParseError("empty value")
    return text


def parse_weight(raw: object) -> float:
    text = _normalize(raw)
    try:
        value = float(text)
    except ValueError as exc:
        raise InputParseError(f"invalid weight '{raw}'") from exc
    if not math.isfinite(value) or value < 0:
        raise InputParseError(f"invalid weight '{raw}'")
    return value


def parse_reps(raw: object) -> int:
    text = _normalize(raw)
    try:
        value = int(text)
    except ValueError as exc:
        raise InputParseError(f"invalid reps '{raw}'") from exc
    if value < MIN_REPS:
        raise InputParseError(f"invalid reps '{raw}'")
    return value


def coerce_weight(raw: object, fallback: float) -> float:
    """Parsed weight, or ``fallback`` when the text is unusable."""
    try:
        return parse_weight(raw)
    except InputParseError:
        return fallback


def coerce_reps(raw: object, fallback: int) -> int:
    """Parsed reps, or ``fallback`` when the text is unusable."""
    try:
        return parse_reps(raw)
    except InputParseError:
        return fallback


def clamp_weight(value: float) -> float:
    return max(MIN_WEIGHT, min(MAX_WEIGHT, value))


def clamp_reps(value: int) -> int:
    return max(MIN_REPS, min(MAX_REPS, value))
