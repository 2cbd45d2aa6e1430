from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """
    Decoded multi-channel audio: samples shaped (channels, length), float64.
    The array is copied and marked read-only; stages build new buffers instead of mutating.
    """
    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        data = np.array(self.samples, dtype=np.float64, copy=True)
        if data.ndim == 1:
            data = data.reshape(1, -1)
        if data.ndim != 2 or data.shape[0] not in (1, 2):
            raise ValueError(f"SampleBuffer needs 1 or 2 channels, got shape {data.shape}")
        if int(self.sample_rate) <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        data.flags.writeable = False
        object.__setattr__(self, "samples", data)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @property
    def num_channels(self) -> int:
        return self.samples.shape[0]

    @property
    def length(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate

    def with_samples(self, samples: np.ndarray, sample_rate: Optional[int] = None) -> "SampleBuffer":
        """New buffer with the given samples (and optionally a new rate)."""
        return SampleBuffer(samples, self.sample_rate if sample_rate is None else sample_rate)


class RenderState(str, Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class RenderStatus(str, Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class RenderResult:
    """Terminal value of one offline render: encoded bytes, a cancellation, or a failure reason."""
    status: RenderStatus
    data: Optional[bytes] = None
    reason: Optional[str] = None
    buffer: Optional[SampleBuffer] = None
    output_path: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, data: bytes, **kwargs) -> "RenderResult":
        return cls(RenderStatus.SUCCESS, data=data, **kwargs)

    @classmethod
    def cancelled(cls, **kwargs) -> "RenderResult":
        return cls(RenderStatus.CANCELLED, reason="Cancelled", **kwargs)

    @classmethod
    def failed(cls, reason: str, **kwargs) -> "RenderResult":
        return cls(RenderStatus.FAILED, reason=reason, **kwargs)

    @property
    def ok(self) -> bool:
        return self.status == RenderStatus.SUCCESS
