"""
Filter chain: input gain -> clean-low-end high-pass -> 5-band EQ -> mud cut -> harshness tame -> air.
All stages are always present; toggles move a stage to neutral parameters
(0 dB gain, or a 1 Hz high-pass corner) instead of removing it.
"""
from dataclasses import dataclass
from typing import Callable, List, Tuple

import numpy as np

from mastering.core.params import db_to_lin
from mastering.dsp.biquad import FilterCoefficients, apply_coefficients, design, new_filter_state
from mastering.params.settings import MasteringSettings

# Clean low end: corner swaps between inaudible and cleanup
HIGHPASS_OFF_HZ = 1.0
HIGHPASS_ON_HZ = 30.0
HIGHPASS_Q = 0.7

# Polish amounts (fixed)
MUD_CUT_DB = -3.0
HARSH_TAME_DB = -2.0
AIR_BOOST_DB = 2.5


# -----------------------------------------------------------------------------
# Stage descriptors
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class GainStage:
    """Scalar gain; 0 dB multiplies by exactly 1.0."""
    name: str
    gain: float

    def apply(self, block: np.ndarray, arena) -> np.ndarray:
        return block * self.gain


@dataclass(frozen=True)
class BiquadStage:
    """One biquad; its history lives in the arena under `name`."""
    name: str
    kind: str
    frequency: float
    q: float
    gain_db: float
    coeffs: FilterCoefficients

    def apply(self, block: np.ndarray, arena) -> np.ndarray:
        state = arena.get(self.name, lambda: new_filter_state(block.shape[0]))
        return apply_coefficients(block, self.coeffs, state)


@dataclass(frozen=True)
class BandSpec:
    name: str
    kind: str
    frequency: float
    q: float
    gain_db: Callable[[MasteringSettings], float]


# Fixed order; polish sits after the user EQ so presets behave the same with any polish toggles
FILTER_BANDS: Tuple[BandSpec, ...] = (
    BandSpec("highpass", "highpass", HIGHPASS_OFF_HZ, HIGHPASS_Q, lambda s: 0.0),
    BandSpec("eq_low", "lowshelf", 80.0, 0.707, lambda s: s.eq_low_db),
    BandSpec("eq_low_mid", "peaking", 250.0, 1.0, lambda s: s.eq_low_mid_db),
    BandSpec("eq_mid", "peaking", 1000.0, 1.0, lambda s: s.eq_mid_db),
    BandSpec("eq_high_mid", "peaking", 4000.0, 1.0, lambda s: s.eq_high_mid_db),
    BandSpec("eq_high", "highshelf", 12000.0, 0.707, lambda s: s.eq_high_db),
    BandSpec("mud_cut", "peaking", 250.0, 1.5, lambda s: MUD_CUT_DB if s.cut_mud else 0.0),
    BandSpec("harsh_tame", "peaking", 5000.0, 2.0, lambda s: HARSH_TAME_DB if s.tame_harsh else 0.0),
    BandSpec("air_boost", "highshelf", 12000.0, 0.707, lambda s: AIR_BOOST_DB if s.add_air else 0.0),
)


def highpass_corner(settings: MasteringSettings) -> float:
    return HIGHPASS_ON_HZ if settings.clean_low_end else HIGHPASS_OFF_HZ


def input_gain_stage(settings: MasteringSettings) -> GainStage:
    return GainStage("input_gain", db_to_lin(settings.input_gain_db))


def build_filter_stages(settings: MasteringSettings, sample_rate: int) -> List[BiquadStage]:
    """Biquad stages in chain order, designed for sample_rate."""
    stages = []
    for band in FILTER_BANDS:
        frequency = highpass_corner(settings) if band.kind == "highpass" else band.frequency
        gain_db = band.gain_db(settings)
        coeffs = design(band.kind, sample_rate, frequency, band.q, gain_db)
        stages.append(BiquadStage(band.name, band.kind, frequency, band.q, gain_db, coeffs))
    return stages
