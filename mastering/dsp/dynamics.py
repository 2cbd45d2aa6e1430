"""
Dynamics: one feed-forward compressor model shared by the glue compressor and the peak limiter.
Gain computer in the log domain with a quadratic soft knee, smoothed by a one-pole
attack/release follower on the gain. Detection is stereo-linked (max |x| across channels).
Disabled instances run with threshold 0 dB, ratio 1:1, which yields a gain of exactly 1.0.
"""
import math
from dataclasses import dataclass

import numba
import numpy as np

from mastering.core.params import db_to_lin
from mastering.params.settings import MasteringSettings

LEVEL_FLOOR_DB = -200.0


@dataclass(frozen=True)
class CompressorParams:
    threshold_db: float = 0.0
    ratio: float = 1.0
    knee_db: float = 0.0
    attack_s: float = 0.003
    release_s: float = 0.25
    # Hard safety clip after gain reduction; inf disables
    clip_db: float = math.inf


# -----------------------------------------------------------------------------
# Parameter sets
# -----------------------------------------------------------------------------

GLUE_ATTACK_S = 0.02
GLUE_RELEASE_S = 0.25
LIMITER_RATIO = 20.0
LIMITER_ATTACK_S = 0.001
LIMITER_RELEASE_S = 0.05


def glue_params(settings: MasteringSettings) -> CompressorParams:
    if settings.glue_compression:
        return CompressorParams(-18.0, 3.0, 10.0, GLUE_ATTACK_S, GLUE_RELEASE_S)
    return CompressorParams(0.0, 1.0, 10.0, GLUE_ATTACK_S, GLUE_RELEASE_S)


def limiter_params(settings: MasteringSettings) -> CompressorParams:
    if settings.true_peak_limit:
        return CompressorParams(
            settings.ceiling_db, LIMITER_RATIO, 0.0, LIMITER_ATTACK_S, LIMITER_RELEASE_S,
            clip_db=settings.ceiling_db,
        )
    return CompressorParams(0.0, 1.0, 0.0, LIMITER_ATTACK_S, LIMITER_RELEASE_S)


def time_coeff(seconds: float, sample_rate: int) -> float:
    """One-pole smoothing coefficient; 0 means instantaneous."""
    if seconds <= 0:
        return 0.0
    return math.exp(-1.0 / (seconds * sample_rate))


def static_gain_db(level_db: float, params: CompressorParams) -> float:
    """Gain-computer curve (dB of gain change, <= 0) for a detector level."""
    return _gain_computer(level_db, params.threshold_db, 1.0 / params.ratio - 1.0, params.knee_db)


# -----------------------------------------------------------------------------
# Kernel
# -----------------------------------------------------------------------------

@numba.njit(cache=True)
def _gain_computer(level_db, threshold_db, slope, knee_db):
    over = level_db - threshold_db
    half_knee = knee_db / 2.0
    if over < -half_knee:
        return 0.0
    if knee_db > 0.0 and over <= half_knee:
        return slope * (over + half_knee) * (over + half_knee) / (2.0 * knee_db)
    return slope * over


@numba.njit(cache=True)
def _compressor_kernel(x, out, threshold_db, slope, knee_db, attack_coeff, release_coeff, clip, state):
    """
    x/out: (channels, n). state[0] holds the smoothed gain in dB, updated in place.
    """
    channels, n = x.shape
    g = state[0]
    for i in range(n):
        peak = 0.0
        for ch in range(channels):
            a = abs(x[ch, i])
            if a > peak:
                peak = a
        if peak > 1e-10:
            level = 20.0 * math.log10(peak)
        else:
            level = LEVEL_FLOOR_DB
        target = _gain_computer(level, threshold_db, slope, knee_db)
        if target < g:
            g = attack_coeff * g + (1.0 - attack_coeff) * target
        else:
            g = release_coeff * g + (1.0 - release_coeff) * target
        gain = 10.0 ** (g / 20.0)
        for ch in range(channels):
            y = x[ch, i] * gain
            if y > clip:
                y = clip
            elif y < -clip:
                y = -clip
            out[ch, i] = y
    state[0] = g


def new_dynamics_state() -> np.ndarray:
    return np.zeros(1, dtype=np.float64)


@dataclass(frozen=True)
class DynamicsStage:
    name: str
    params: CompressorParams
    sample_rate: int

    def apply(self, block: np.ndarray, arena) -> np.ndarray:
        state = arena.get(self.name, new_dynamics_state)
        x = np.ascontiguousarray(block, dtype=np.float64)
        out = np.empty_like(x)
        if x.shape[1]:
            p = self.params
            clip = db_to_lin(p.clip_db) if math.isfinite(p.clip_db) else math.inf
            _compressor_kernel(
                x, out,
                p.threshold_db, 1.0 / p.ratio - 1.0, p.knee_db,
                time_coeff(p.attack_s, self.sample_rate),
                time_coeff(p.release_s, self.sample_rate),
                clip, state,
            )
        return out


def build_dynamics_stages(settings: MasteringSettings, sample_rate: int):
    """Glue compressor then limiter; both always present."""
    return [
        DynamicsStage("glue", glue_params(settings), sample_rate),
        DynamicsStage("limiter", limiter_params(settings), sample_rate),
    ]
