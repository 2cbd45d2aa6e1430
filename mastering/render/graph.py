"""
Signal-flow graph: an ordered list of stateless stage descriptors plus one mutable state arena.
Order: input gain -> filters -> dynamics -> stereo width.
Preview and offline render both run blocks through process_block(), so for the same settings
and source they produce the same samples regardless of block size.
"""
import logging
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from mastering.analysis.loudness import NormalizationResult, normalize_to_lufs
from mastering.core.errors import RenderCancelled, RenderError
from mastering.core.types import SampleBuffer
from mastering.dsp.dynamics import build_dynamics_stages
from mastering.dsp.filters import build_filter_stages, input_gain_stage
from mastering.dsp.resample import resample
from mastering.dsp.stereo import WidthStage
from mastering.params.settings import MasteringSettings

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 4096


class StateArena:
    """Per-graph-instance mutable state (filter histories, dynamics envelopes), keyed by stage name."""

    def __init__(self):
        self._states: Dict[str, np.ndarray] = {}

    def get(self, name: str, factory: Callable[[], np.ndarray]) -> np.ndarray:
        state = self._states.get(name)
        if state is None:
            state = factory()
            self._states[name] = state
        return state

    def reset(self) -> None:
        """Zero every history (seek / discontinuity)."""
        for state in self._states.values():
            state.fill(0.0)

    def __contains__(self, name: str) -> bool:
        return name in self._states

    def __len__(self) -> int:
        return len(self._states)


def build_stages(settings: MasteringSettings, sample_rate: int) -> List:
    """Compile a settings snapshot into the ordered stage list for sample_rate."""
    stages = [input_gain_stage(settings)]
    stages.extend(build_filter_stages(settings, sample_rate))
    stages.extend(build_dynamics_stages(settings, sample_rate))
    stages.append(WidthStage("stereo_width", settings.stereo_width))
    return stages


def process_block(stages: List, arena: StateArena, block: np.ndarray) -> np.ndarray:
    """
    Run one (channels, n) block through every stage.
    Raises RenderError if the result contains NaN or inf.
    """
    out = np.asarray(block, dtype=np.float64)
    for stage in stages:
        out = stage.apply(out, arena)
    if not np.all(np.isfinite(out)):
        raise RenderError("Non-finite sample detected in rendered block")
    return out


# -----------------------------------------------------------------------------
# Source preparation (shared by both modes)
# -----------------------------------------------------------------------------

def prepare_source(
    source: SampleBuffer,
    settings: MasteringSettings,
    target_rate: int,
    measured_lufs: Optional[float] = None,
) -> Tuple[SampleBuffer, Optional[NormalizationResult]]:
    """Normalize at the source rate (when enabled), then resample to target_rate."""
    normalization = None
    prepared = source
    if settings.normalize_loudness:
        normalization = normalize_to_lufs(source, settings.target_lufs, measured_lufs)
        prepared = normalization.buffer
    return resample(prepared, target_rate), normalization


def render_blocks(
    source: SampleBuffer,
    stages: List,
    arena: StateArena,
    block_size: int = DEFAULT_BLOCK_SIZE,
    is_cancelled: Optional[Callable[[], bool]] = None,
    on_block: Optional[Callable[[int, int], None]] = None,
) -> np.ndarray:
    """
    Process a whole buffer block by block. Cancellation is checked between blocks only.
    on_block(done_samples, total_samples) is called after each block.
    """
    total = source.length
    out = np.empty_like(source.samples)
    block_size = max(1, int(block_size))
    for start in range(0, total, block_size):
        if is_cancelled is not None and is_cancelled():
            raise RenderCancelled()
        end = min(start + block_size, total)
        out[:, start:end] = process_block(stages, arena, source.samples[:, start:end])
        if on_block is not None:
            on_block(end, total)
    return out


def render_offline(
    source: SampleBuffer,
    settings: MasteringSettings,
    block_size: int = DEFAULT_BLOCK_SIZE,
    is_cancelled: Optional[Callable[[], bool]] = None,
    on_block: Optional[Callable[[int, int], None]] = None,
) -> SampleBuffer:
    """
    Render an already-prepared source (normalized/resampled) with a fresh state arena.
    Pure with respect to its inputs: the source buffer is not modified.
    """
    stages = build_stages(settings, source.sample_rate)
    arena = StateArena()
    logger.debug("[Render] %d stages, %d samples @ %d Hz", len(stages), source.length, source.sample_rate)
    rendered = render_blocks(source, stages, arena, block_size, is_cancelled, on_block)
    return source.with_samples(rendered)

