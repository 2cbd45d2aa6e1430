"""
Settings schema: single source of defaults and ranges for MasteringSettings.
Aliases are the camelCase names used by the control surface.
"""
from typing import Any, Dict, Literal

ParamType = Literal["float", "int", "bool"]
ParamGroup = Literal["input", "loudness", "cleanup", "eq", "polish", "dynamics", "stereo", "output"]

ParamSchemaEntry = Dict[str, Any]


def _make_param(
    param_type: ParamType,
    default: Any,
    min_val: Any,
    max_val: Any,
    group: ParamGroup,
    alias: str,
    description: str,
) -> ParamSchemaEntry:
    """Helper to create a schema entry."""
    return {
        "type": param_type,
        "default": default,
        "min": min_val,
        "max": max_val,
        "group": group,
        "alias": alias,
        "description": description,
    }


# -----------------------------------------------------------------------------
# PARAM_SCHEMA: field -> type, default, min, max, group, alias, description
# -----------------------------------------------------------------------------

PARAM_SCHEMA: Dict[str, ParamSchemaEntry] = {
    "input_gain_db": _make_param(
        "float", 0.0, -12.0, 12.0, "input", "inputGainDb", "Gain applied before all processing (dB)"
    ),
    "normalize_loudness": _make_param(
        "bool", True, None, None, "loudness", "normalizeLoudness", "Normalize source to target loudness"
    ),
    "target_lufs": _make_param(
        "float", -14.0, -30.0, -5.0, "loudness", "targetLufs", "Integrated loudness target (LUFS)"
    ),
    "true_peak_limit": _make_param(
        "bool", True, None, None, "dynamics", "truePeakLimit", "Enable the peak limiter"
    ),
    "ceiling_db": _make_param(
        "float", -1.0, -6.0, 0.0, "dynamics", "ceilingDb", "Limiter ceiling (dBFS)"
    ),
    "clean_low_end": _make_param(
        "bool", True, None, None, "cleanup", "cleanLowEnd", "30 Hz high-pass cleanup"
    ),
    "glue_compression": _make_param(
        "bool", False, None, None, "dynamics", "glueCompression", "Gentle bus compression"
    ),
    "cut_mud": _make_param(
        "bool", False, None, None, "polish", "cutMud", "-3 dB at 250 Hz"
    ),
    "add_air": _make_param(
        "bool", False, None, None, "polish", "addAir", "+2.5 dB shelf above 12 kHz"
    ),
    "tame_harsh": _make_param(
        "bool", False, None, None, "polish", "tameHarsh", "-2 dB at 5 kHz"
    ),
    "eq_low_db": _make_param(
        "float", 0.0, -12.0, 12.0, "eq", "eqLow", "Low shelf 80 Hz (dB)"
    ),
    "eq_low_mid_db": _make_param(
        "float", 0.0, -12.0, 12.0, "eq", "eqLowMid", "Peak 250 Hz (dB)"
    ),
    "eq_mid_db": _make_param(
        "float", 0.0, -12.0, 12.0, "eq", "eqMid", "Peak 1 kHz (dB)"
    ),
    "eq_high_mid_db": _make_param(
        "float", 0.0, -12.0, 12.0, "eq", "eqHighMid", "Peak 4 kHz (dB)"
    ),
    "eq_high_db": _make_param(
        "float", 0.0, -12.0, 12.0, "eq", "eqHigh", "High shelf 12 kHz (dB)"
    ),
    "stereo_width_percent": _make_param(
        "float", 100.0, 0.0, 200.0, "stereo", "stereoWidthPercent", "Mid/side width (100 = unchanged)"
    ),
    "output_sample_rate_hz": _make_param(
        "int", 44100, 8000, 192000, "output", "outputSampleRateHz", "Export sample rate (Hz)"
    ),
    "output_bit_depth": _make_param(
        "int", 16, 16, 24, "output", "outputBitDepth", "Export bit depth (16 or 24)"
    ),
}

# Field order of the five EQ bands, low to high
EQ_BAND_FIELDS = ("eq_low_db", "eq_low_mid_db", "eq_mid_db", "eq_high_mid_db", "eq_high_db")

SUPPORTED_BIT_DEPTHS = (16, 24)

# Legacy/alternate names accepted on input
EXTRA_ALIASES = {
    "eqLowDb": "eq_low_db",
    "eqLowMidDb": "eq_low_mid_db",
    "eqMidDb": "eq_mid_db",
    "eqHighMidDb": "eq_high_mid_db",
    "eqHighDb": "eq_high_db",
    "inputGain": "input_gain_db",
    "truePeakCeiling": "ceiling_db",
    "stereoWidth": "stereo_width_percent",
    "sampleRate": "output_sample_rate_hz",
    "bitDepth": "output_bit_depth",
}


def defaults() -> Dict[str, Any]:
    """Default value for every field."""
    return {name: entry["default"] for name, entry in PARAM_SCHEMA.items()}
