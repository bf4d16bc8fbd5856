import math
from typing import Optional

from studio.core.exceptions import InvalidInput


def require_text(value: Optional[str], field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidInput(f"{field} is required")
    return cleaned


def optional_text(value: Optional[str]) -> Optional[str]:
    cleaned = (value or "").strip()
    return cleaned or None


def _finite(value: Optional[float], field: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInput(f"{field} must be a finite number")
    return float(value)


def validate_anchor(
    timecode_seconds: Optional[float],
    x: Optional[float],
    y: Optional[float],
) -> tuple[Optional[float], Optional[float], Optional[float]]:
    """Check a thread anchor: timecode >= 0, and x/y both set and within [0, 1] or both unset."""
    timecode_seconds = _finite(timecode_seconds, "timecode_seconds")
    x = _finite(x, "x")
    y = _finite(y, "y")

    if timecode_seconds is not None and timecode_seconds < 0:
        raise InvalidInput("timecode_seconds must be zero or positive")
    if (x is None) != (y is None):
        raise InvalidInput("x and y must be given together")
    for name, value in (("x", x), ("y", y)):
        if value is not None and not 0.0 <= value <= 1.0:
            raise InvalidInput(f"{name} must be between 0 and 1")
    return timecode_seconds, x, y


def validate_duration(duration: Optional[float]) -> Optional[float]:
    duration = _finite(duration, "duration")
    if duration is not None and duration < 0:
        raise InvalidInput("duration must be zero or positive")
    return duration
