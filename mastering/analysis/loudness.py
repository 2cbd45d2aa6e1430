"""
Integrated loudness (ITU-R BS.1770-4 style) and static-gain normalization.
K-weighting: high-shelf 1681.97 Hz / +4 dB / Q 0.71, then high-pass 38.14 Hz / Q 0.5.
Blocks of 400 ms every 100 ms; absolute gate at 1e-7 mean power, relative gate at 10% of the
gated mean. Block power is averaged over channels.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from mastering.core.errors import MeasurementUndefined
from mastering.core.params import db_to_lin
from mastering.core.types import SampleBuffer
from mastering.dsp.biquad import Biquad

logger = logging.getLogger(__name__)

DEFAULT_TARGET_LUFS = -14.0

K_SHELF_HZ = 1681.97
K_SHELF_GAIN_DB = 4.0
K_SHELF_Q = 0.71
K_HIGHPASS_HZ = 38.14
K_HIGHPASS_Q = 0.5

BLOCK_S = 0.4
HOP_S = 0.1
ABSOLUTE_GATE_POWER = 1e-7   # ~ -70 LUFS
RELATIVE_GATE_FACTOR = 0.1   # -10 LU
LUFS_OFFSET = -0.691


def k_weighting(buffer: SampleBuffer) -> np.ndarray:
    """K-weighted copy of every channel, each filtered independently from zero history."""
    sr = buffer.sample_rate
    channels = buffer.num_channels
    shelf = Biquad("highshelf", K_SHELF_HZ, K_SHELF_Q, K_SHELF_GAIN_DB, sample_rate=sr, channels=channels)
    hp = Biquad("highpass", K_HIGHPASS_HZ, K_HIGHPASS_Q, sample_rate=sr, channels=channels)
    return hp.process(shelf.process(buffer.samples))


def block_powers(weighted: np.ndarray, sample_rate: int) -> np.ndarray:
    """Mean-square power of each 400 ms block (75% overlap), averaged across channels."""
    channels, length = weighted.shape
    block = int(math.floor(sample_rate * BLOCK_S))
    hop = int(math.floor(sample_rate * HOP_S))
    if block <= 0 or hop <= 0 or length < block:
        return np.zeros(0, dtype=np.float64)

    energy = np.sum(weighted * weighted, axis=0)
    cumulative = np.concatenate(([0.0], np.cumsum(energy)))
    starts = np.arange(0, length - block + 1, hop)
    sums = cumulative[starts + block] - cumulative[starts]
    return sums / (block * channels)


def measure_lufs(buffer: SampleBuffer) -> float:
    """
    Integrated loudness in LUFS.
    Returns -inf for silence or input shorter than one block.
    """
    powers = block_powers(k_weighting(buffer), buffer.sample_rate)
    if powers.size == 0:
        return -math.inf

    gated = powers[powers > ABSOLUTE_GATE_POWER]
    if gated.size == 0:
        return -math.inf

    ungated_mean = float(np.mean(gated))
    gated = gated[gated > ungated_mean * RELATIVE_GATE_FACTOR]
    if gated.size == 0:
        return -math.inf

    return LUFS_OFFSET + 10.0 * math.log10(float(np.mean(gated)))


# -----------------------------------------------------------------------------
# Normalization
# -----------------------------------------------------------------------------

@dataclass
class NormalizationResult:
    buffer: SampleBuffer
    measured_lufs: float
    target_lufs: float
    gain_db: float = 0.0
    warning: Optional[MeasurementUndefined] = None

    @property
    def applied(self) -> bool:
        return self.warning is None


def normalize_to_lufs(buffer: SampleBuffer, target_lufs: float = DEFAULT_TARGET_LUFS,
                      measured_lufs: Optional[float] = None) -> NormalizationResult:
    """
    Scale every sample so integrated loudness reaches target_lufs.
    If loudness is undefined the original buffer is returned with a MeasurementUndefined warning.
    """
    current = measure_lufs(buffer) if measured_lufs is None else measured_lufs
    if not math.isfinite(current):
        warning = MeasurementUndefined(
            "Could not measure loudness (silent or shorter than 400 ms); normalization skipped"
        )
        logger.warning("[LUFS] %s", warning)
        return NormalizationResult(buffer, current, target_lufs, 0.0, warning)

    gain_db = target_lufs - current
    logger.info("[LUFS] Current: %.2f LUFS, Target: %.2f LUFS, gain %.2f dB", current, target_lufs, gain_db)
    normalized = buffer.with_samples(buffer.samples * db_to_lin(gain_db))
    return NormalizationResult(normalized, current, target_lufs, gain_db)
