"""
Boundary IO: decoding via soundfile stands in for the host decoder; encoding uses the PCM encoder.
"""
import io
from pathlib import Path
from typing import Union

import numpy as np
import soundfile as sf
import torch

from mastering.core.types import SampleBuffer
from mastering.export.pcm import encode_wav


class AudioIO:
    @staticmethod
    def load(path: Union[str, Path]) -> SampleBuffer:
        """Decode an audio file into a SampleBuffer. Only the first two channels are kept."""
        data, sample_rate = sf.read(str(path), dtype="float64", always_2d=True)
        return AudioIO._to_buffer(data, sample_rate)

    @staticmethod
    def from_bytes(payload: bytes) -> SampleBuffer:
        """Decode an in-memory audio file (e.g. request body)."""
        data, sample_rate = sf.read(io.BytesIO(payload), dtype="float64", always_2d=True)
        return AudioIO._to_buffer(data, sample_rate)

    @staticmethod
    def _to_buffer(data: np.ndarray, sample_rate: int) -> SampleBuffer:
        # soundfile gives (frames, channels)
        samples = data.T[:2]
        return SampleBuffer(np.clip(samples, -1.0, 1.0), sample_rate)

    @staticmethod
    def to_bytes(buffer: SampleBuffer, bit_depth: int = 16) -> bytes:
        """Encode as WAV bytes at the buffer's own rate."""
        return encode_wav(buffer, buffer.sample_rate, bit_depth)

    @staticmethod
    def to_tensor(buffer: SampleBuffer) -> torch.Tensor:
        return torch.from_numpy(buffer.samples.copy())

    @staticmethod
    def from_tensor(waveform: torch.Tensor, sample_rate: int) -> SampleBuffer:
        if isinstance(waveform, torch.Tensor):
            data = waveform.detach().cpu().double().numpy()
        else:
            data = np.asarray(waveform, dtype=np.float64)
        return SampleBuffer(data, sample_rate)
