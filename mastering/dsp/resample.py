"""
Sample-rate conversion shared by preview (device rate) and export (output rate).
Windowed-sinc interpolation via torchaudio; deterministic for a given input and rate pair.
"""
import logging

import torchaudio.functional as F

from mastering.core.io import AudioIO
from mastering.core.types import SampleBuffer

logger = logging.getLogger(__name__)

# Sinc kernel width in zero crossings of the lower rate
LOWPASS_FILTER_WIDTH = 16
ROLLOFF = 0.95


def resample(buffer: SampleBuffer, target_rate: int) -> SampleBuffer:
    """Return buffer at target_rate. Same rate returns the input buffer itself."""
    target_rate = int(target_rate)
    if target_rate == buffer.sample_rate:
        return buffer
    if buffer.length == 0:
        return buffer.with_samples(buffer.samples, sample_rate=target_rate)

    waveform = AudioIO.to_tensor(buffer)
    resampled = F.resample(
        waveform,
        orig_freq=buffer.sample_rate,
        new_freq=target_rate,
        lowpass_filter_width=LOWPASS_FILTER_WIDTH,
        rolloff=ROLLOFF,
        resampling_method="sinc_interp_kaiser",
    )
    logger.info(
        "[Resample] %d Hz -> %d Hz (%d -> %d samples)",
        buffer.sample_rate, target_rate, buffer.length, resampled.shape[-1],
    )
    return AudioIO.from_tensor(resampled, target_rate)
