"""
Stereo width via a mid/side matrix folded into L/R coefficients:
    L' = L*(m + s) + R*(m - s)
    R' = L*(m - s) + R*(m + s)
with m = 0.5, s = 0.5 * width. width 1.0 is the identity, 0.0 collapses to mono.
"""
from dataclasses import dataclass
from typing import Tuple

import numpy as np

MID_COEF = 0.5


def width_matrix(width: float) -> Tuple[float, float]:
    """(direct, cross) coefficients for a width factor."""
    side_coef = 0.5 * width
    return MID_COEF + side_coef, MID_COEF - side_coef


def mid_side(block: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Encode a stereo block to (mid, side)."""
    left, right = block[0], block[1]
    return (left + right) / 2.0, (left - right) / 2.0


def apply_width(block: np.ndarray, width: float) -> np.ndarray:
    """Width on a (channels, n) block. Mono input is returned unchanged."""
    if block.shape[0] != 2:
        return block
    direct, cross = width_matrix(width)
    left, right = block[0], block[1]
    out = np.empty_like(block)
    out[0] = left * direct + right * cross
    out[1] = left * cross + right * direct
    return out


@dataclass(frozen=True)
class WidthStage:
    name: str
    width: float

    def apply(self, block: np.ndarray, arena) -> np.ndarray:
        return apply_width(block, self.width)
