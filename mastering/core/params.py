"""
Param helpers shared by the settings layer and DSP stages.
"""
import math
from typing import Any, Optional


def db_to_lin(db: float) -> float:
    """Convert decibels to linear gain. 0 dB -> 1.0."""
    return 10.0 ** (db / 20.0)


def to_float(value: Any, default: float) -> float:
    """Coerce to a float, falling back to default for junk and NaN."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(v):
        return default
    return v


def to_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
    return default


def clamp_if_bounds(
    value: float,
    min: Optional[float] = None,
    max: Optional[float] = None,
) -> float:
    """
    Clamp value to [min, max] when bounds are not None.
    If both are None, returns value unchanged.
    """
    v = float(value)
    if min is not None and v < min:
        return float(min)
    if max is not None and v > max:
        return float(max)
    return v
