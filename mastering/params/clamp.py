"""
Range clamping for settings: every numeric field is forced into its schema range before use.
Out-of-range or malformed values never raise; preview must keep playing.
"""
import logging
from typing import Any, Dict

from mastering.core.params import clamp_if_bounds, to_bool, to_float
from mastering.params.schema import PARAM_SCHEMA, SUPPORTED_BIT_DEPTHS

logger = logging.getLogger(__name__)


def _snap_bit_depth(value: float) -> int:
    """Nearest supported depth; ties go to the lower depth."""
    return min(SUPPORTED_BIT_DEPTHS, key=lambda depth: (abs(depth - value), depth))


def clamp_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Coerce and clamp a dict of snake_case settings fields.
    Returns a new dict (does not mutate input). Unknown keys are dropped.
    """
    result: Dict[str, Any] = {}
    for name, entry in PARAM_SCHEMA.items():
        if name not in params:
            continue
        raw = params[name]
        default = entry["default"]

        if entry["type"] == "bool":
            result[name] = to_bool(raw, default)
            continue

        value = to_float(raw, float(default))
        if name == "output_bit_depth":
            clamped = _snap_bit_depth(value)
        else:
            clamped = clamp_if_bounds(value, entry["min"], entry["max"])
            if entry["type"] == "int":
                clamped = int(round(clamped))

        if clamped != value:
            logger.warning("[Settings] %s=%r out of range, using %r", name, raw, clamped)
        result[name] = clamped
    return result
