"""
Second-order IIR (biquad) filters.
Coefficient design follows the audio-EQ cookbook, normalized so a0 = 1.
Filtering is direct form I with per-channel history carried across calls:
    y[n] = b0*x[n] + b1*x[n-1] + b2*x[n-2] - a1*y[n-1] - a2*y[n-2]
A gain of 0 dB degenerates to b == a, so shelves and peaks are neutral without a skip path.
"""
import math
from dataclasses import dataclass
from typing import Optional

import numba
import numpy as np


@dataclass(frozen=True)
class FilterCoefficients:
    b0: float
    b1: float
    b2: float
    a1: float
    a2: float

    def as_tuple(self):
        return (self.b0, self.b1, self.b2, self.a1, self.a2)

    def response(self, freq_hz: float, sample_rate: int) -> complex:
        """Complex frequency response H(e^jw) at freq_hz."""
        w = 2.0 * math.pi * freq_hz / sample_rate
        z1 = complex(math.cos(w), -math.sin(w))
        z2 = z1 * z1
        return (self.b0 + self.b1 * z1 + self.b2 * z2) / (1.0 + self.a1 * z1 + self.a2 * z2)

    def magnitude_db(self, freq_hz: float, sample_rate: int) -> float:
        return 20.0 * math.log10(abs(self.response(freq_hz, sample_rate)))


# -----------------------------------------------------------------------------
# Coefficient design (cookbook)
# -----------------------------------------------------------------------------

def _omega(sample_rate: int, frequency: float, q: float):
    # Keep the corner inside (0, Nyquist)
    frequency = min(max(frequency, 1e-3), sample_rate / 2.0 - 1.0)
    w0 = 2.0 * math.pi * frequency / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2.0 * q)
    return cos_w0, alpha


def _normalize(b0, b1, b2, a0, a1, a2) -> FilterCoefficients:
    return FilterCoefficients(b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0)


def high_shelf(sample_rate: int, frequency: float, q: float = 0.707, gain_db: float = 0.0) -> FilterCoefficients:
    a = 10.0 ** (gain_db / 40.0)
    cos_w0, alpha = _omega(sample_rate, frequency, q)
    sqrt_a2 = 2.0 * math.sqrt(a) * alpha
    b0 = a * ((a + 1.0) + (a - 1.0) * cos_w0 + sqrt_a2)
    b1 = -2.0 * a * ((a - 1.0) + (a + 1.0) * cos_w0)
    b2 = a * ((a + 1.0) + (a - 1.0) * cos_w0 - sqrt_a2)
    a0 = (a + 1.0) - (a - 1.0) * cos_w0 + sqrt_a2
    a1 = 2.0 * ((a - 1.0) - (a + 1.0) * cos_w0)
    a2 = (a + 1.0) - (a - 1.0) * cos_w0 - sqrt_a2
    return _normalize(b0, b1, b2, a0, a1, a2)


def low_shelf(sample_rate: int, frequency: float, q: float = 0.707, gain_db: float = 0.0) -> FilterCoefficients:
    a = 10.0 ** (gain_db / 40.0)
    cos_w0, alpha = _omega(sample_rate, frequency, q)
    sqrt_a2 = 2.0 * math.sqrt(a) * alpha
    b0 = a * ((a + 1.0) - (a - 1.0) * cos_w0 + sqrt_a2)
    b1 = 2.0 * a * ((a - 1.0) - (a + 1.0) * cos_w0)
    b2 = a * ((a + 1.0) - (a - 1.0) * cos_w0 - sqrt_a2)
    a0 = (a + 1.0) + (a - 1.0) * cos_w0 + sqrt_a2
    a1 = -2.0 * ((a - 1.0) + (a + 1.0) * cos_w0)
    a2 = (a + 1.0) + (a - 1.0) * cos_w0 - sqrt_a2
    return _normalize(b0, b1, b2, a0, a1, a2)


def high_pass(sample_rate: int, frequency: float, q: float = 0.707, gain_db: float = 0.0) -> FilterCoefficients:
    """gain_db is accepted for a uniform design signature and ignored."""
    cos_w0, alpha = _omega(sample_rate, frequency, q)
    b0 = (1.0 + cos_w0) / 2.0
    b1 = -(1.0 + cos_w0)
    b2 = (1.0 + cos_w0) / 2.0
    a0 = 1.0 + alpha
    a1 = -2.0 * cos_w0
    a2 = 1.0 - alpha
    return _normalize(b0, b1, b2, a0, a1, a2)


def peaking(sample_rate: int, frequency: float, q: float = 1.0, gain_db: float = 0.0) -> FilterCoefficients:
    a = 10.0 ** (gain_db / 40.0)
    cos_w0, alpha = _omega(sample_rate, frequency, q)
    b0 = 1.0 + alpha * a
    b1 = -2.0 * cos_w0
    b2 = 1.0 - alpha * a
    a0 = 1.0 + alpha / a
    a1 = -2.0 * cos_w0
    a2 = 1.0 - alpha / a
    return _normalize(b0, b1, b2, a0, a1, a2)


DESIGNS = {
    "highshelf": high_shelf,
    "lowshelf": low_shelf,
    "highpass": high_pass,
    "peaking": peaking,
}


def design(kind: str, sample_rate: int, frequency: float, q: float, gain_db: float = 0.0) -> FilterCoefficients:
    try:
        fn = DESIGNS[kind]
    except KeyError:
        raise ValueError(f"Unknown filter type: {kind}") from None
    return fn(sample_rate, frequency, q, gain_db)


# -----------------------------------------------------------------------------
# Difference equation kernel
# -----------------------------------------------------------------------------

@numba.njit(cache=True)
def _biquad_kernel(x, out, b0, b1, b2, a1, a2, state):
    """
    Direct form I over a (channels, n) block.
    state[ch] = (x1, x2, y1, y2), updated in place.
    """
    channels, n = x.shape
    for ch in range(channels):
        x1 = state[ch, 0]
        x2 = state[ch, 1]
        y1 = state[ch, 2]
        y2 = state[ch, 3]
        for i in range(n):
            x0 = x[ch, i]
            y0 = b0 * x0 + b1 * x1 + b2 * x2 - a1 * y1 - a2 * y2
            out[ch, i] = y0
            x2 = x1
            x1 = x0
            y2 = y1
            y1 = y0
        state[ch, 0] = x1
        state[ch, 1] = x2
        state[ch, 2] = y1
        state[ch, 3] = y2


def new_filter_state(channels: int) -> np.ndarray:
    """Zeroed (x1, x2, y1, y2) history per channel."""
    return np.zeros((channels, 4), dtype=np.float64)


def apply_coefficients(block: np.ndarray, coeffs: FilterCoefficients, state: np.ndarray) -> np.ndarray:
    """Filter a (channels, n) block, advancing `state`. Returns a new array."""
    x = np.ascontiguousarray(block, dtype=np.float64)
    out = np.empty_like(x)
    if x.shape[1]:
        _biquad_kernel(x, out, coeffs.b0, coeffs.b1, coeffs.b2, coeffs.a1, coeffs.a2, state)
    return out


class Biquad:
    """
    Standalone single filter with owned per-channel history (K-weighting uses it).
    The render graph uses BiquadStage instead, whose history lives in the state arena.
    Coefficients are redesigned only when a design parameter or the sample rate changes;
    history survives redesigns and is cleared by reset().
    """

    def __init__(self, kind: str, frequency: float, q: float = 0.707, gain_db: float = 0.0,
                 sample_rate: int = 44100, channels: int = 2):
        self.kind = kind
        self.frequency = float(frequency)
        self.q = float(q)
        self.gain_db = float(gain_db)
        self.sample_rate = int(sample_rate)
        self.state = new_filter_state(channels)
        self._coeffs: Optional[FilterCoefficients] = None

    @property
    def coefficients(self) -> FilterCoefficients:
        if self._coeffs is None:
            self._coeffs = design(self.kind, self.sample_rate, self.frequency, self.q, self.gain_db)
        return self._coeffs

    def set_params(self, frequency: Optional[float] = None, q: Optional[float] = None,
                   gain_db: Optional[float] = None, sample_rate: Optional[int] = None) -> None:
        changed = False
        for attr, value in (("frequency", frequency), ("q", q), ("gain_db", gain_db), ("sample_rate", sample_rate)):
            if value is None:
                continue
            value = int(value) if attr == "sample_rate" else float(value)
            if getattr(self, attr) != value:
                setattr(self, attr, value)
                changed = True
        if changed:
            self._coeffs = None

    def reset(self) -> None:
        self.state.fill(0.0)

    def process(self, block: np.ndarray) -> np.ndarray:
        return apply_coefficients(block, self.coefficients, self.state)
