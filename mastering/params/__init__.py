"""
Settings schema, resolution, clamping and presets.
Default values: single source is schema.PARAM_SCHEMA; use MasteringSettings() for resolved defaults.
"""
from mastering.params.schema import PARAM_SCHEMA
from mastering.params.resolve import resolve_params
from mastering.params.clamp import clamp_params
from mastering.params.settings import MasteringSettings
from mastering.params.presets import (
    EQ_PRESETS,
    OUTPUT_PRESETS,
    active_eq_preset,
    apply_eq_preset,
    apply_output_preset,
)

__all__ = [
    "PARAM_SCHEMA",
    "resolve_params",
    "clamp_params",
    "MasteringSettings",
    "EQ_PRESETS",
    "OUTPUT_PRESETS",
    "active_eq_preset",
    "apply_eq_preset",
    "apply_output_preset",
]
