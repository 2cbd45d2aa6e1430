"""
RIFF/WAVE linear PCM encoder (16- or 24-bit, little-endian, channel-interleaved).
Pure: no resampling or filtering. Samples are clamped to [-1, 1], scaled by 2^(bits-1) - 1
and rounded to nearest.
"""
import struct

import numpy as np

from mastering.core.types import SampleBuffer

WAVE_FORMAT_PCM = 1
HEADER_SIZE = 44
SUPPORTED_BIT_DEPTHS = (16, 24)


def wav_header(num_channels: int, sample_rate: int, bit_depth: int, data_size: int) -> bytes:
    bytes_per_sample = bit_depth // 8
    block_align = num_channels * bytes_per_sample
    return b"".join((
        b"RIFF",
        struct.pack("<I", 36 + data_size),
        b"WAVE",
        b"fmt ",
        struct.pack(
            "<IHHIIHH",
            16,
            WAVE_FORMAT_PCM,
            num_channels,
            sample_rate,
            sample_rate * block_align,
            block_align,
            bit_depth,
        ),
        b"data",
        struct.pack("<I", data_size),
    ))


def quantize(samples: np.ndarray, bit_depth: int) -> np.ndarray:
    """Float samples -> int32 codes for the given depth."""
    max_val = float(2 ** (bit_depth - 1) - 1)
    clipped = np.clip(np.nan_to_num(samples, nan=0.0), -1.0, 1.0)
    return np.round(clipped * max_val).astype(np.int32)


def encode_wav(buffer: SampleBuffer, sample_rate: int, bit_depth: int) -> bytes:
    """Serialize buffer to WAV bytes; sample_rate is written to the header as given."""
    if bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise ValueError(f"Unsupported bit depth: {bit_depth} (expected 16 or 24)")

    # (channels, n) -> interleaved frames
    codes = quantize(buffer.samples, bit_depth).T.reshape(-1)
    if bit_depth == 16:
        payload = codes.astype("<i2").tobytes()
    else:
        raw = codes.astype("<i4").view(np.uint8).reshape(-1, 4)
        payload = raw[:, :3].tobytes()

    header = wav_header(buffer.num_channels, int(sample_rate), bit_depth, len(payload))
    return header + payload
