"""
Named EQ and output-format presets.
A preset overwrites all five bands at once; any manual band move leaves no preset active.
"""
from typing import Dict, Optional

from mastering.params.schema import EQ_BAND_FIELDS
from mastering.params.settings import MasteringSettings

# Band values low -> high: 80 Hz shelf, 250 Hz, 1 kHz, 4 kHz, 12 kHz shelf (dB)
EQ_PRESETS: Dict[str, Dict[str, float]] = {
    "flat": {"eq_low_db": 0.0, "eq_low_mid_db": 0.0, "eq_mid_db": 0.0, "eq_high_mid_db": 0.0, "eq_high_db": 0.0},
    "vocal": {"eq_low_db": -2.0, "eq_low_mid_db": -1.0, "eq_mid_db": 2.0, "eq_high_mid_db": 3.0, "eq_high_db": 1.0},
    "bass": {"eq_low_db": 6.0, "eq_low_mid_db": 3.0, "eq_mid_db": 0.0, "eq_high_mid_db": -1.0, "eq_high_db": -2.0},
    "bright": {"eq_low_db": -1.0, "eq_low_mid_db": 0.0, "eq_mid_db": 1.0, "eq_high_mid_db": 3.0, "eq_high_db": 5.0},
    "warm": {"eq_low_db": 3.0, "eq_low_mid_db": 2.0, "eq_mid_db": 0.0, "eq_high_mid_db": -2.0, "eq_high_db": -3.0},
    "suno": {"eq_low_db": 1.0, "eq_low_mid_db": -2.0, "eq_mid_db": 1.0, "eq_high_mid_db": -1.0, "eq_high_db": 2.0},
}

OUTPUT_PRESETS: Dict[str, Dict[str, int]] = {
    "streaming": {"output_sample_rate_hz": 44100, "output_bit_depth": 16},
    "studio": {"output_sample_rate_hz": 48000, "output_bit_depth": 24},
}


def apply_eq_preset(settings: MasteringSettings, name: str) -> MasteringSettings:
    """Return settings with all five bands set from the named preset."""
    if name not in EQ_PRESETS:
        raise KeyError(f"Unknown EQ preset: {name}")
    return settings.replace(**EQ_PRESETS[name])


def apply_output_preset(settings: MasteringSettings, name: str) -> MasteringSettings:
    if name not in OUTPUT_PRESETS:
        raise KeyError(f"Unknown output preset: {name}")
    return settings.replace(**OUTPUT_PRESETS[name])


def active_eq_preset(settings: MasteringSettings) -> Optional[str]:
    """Name of the preset whose bands equal the current bands, else None."""
    bands = settings.eq_bands
    for name, preset in EQ_PRESETS.items():
        if tuple(preset[field] for field in EQ_BAND_FIELDS) == bands:
            return name
    return None
