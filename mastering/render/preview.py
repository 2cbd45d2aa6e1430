"""
Preview: a live graph pulled block by block by the playback clock.
Settings arrive as immutable snapshots; the snapshot is read once per block, so an update
is never seen half-applied inside a block. Stage descriptors are recompiled when the snapshot
changes while filter/dynamics histories carry over. Seeking clears all histories.
"""
import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from mastering.core.errors import RenderError
from mastering.core.types import SampleBuffer
from mastering.params.settings import MasteringSettings
from mastering.render.graph import StateArena, build_stages, prepare_source, process_block

logger = logging.getLogger(__name__)


class PreviewSession:
    def __init__(
        self,
        source: SampleBuffer,
        device_sample_rate: Optional[int] = None,
        settings: Optional[MasteringSettings] = None,
    ):
        self.source = source
        self.sample_rate = int(device_sample_rate or source.sample_rate)
        self._bypass = False
        self._position = 0
        self._arena = StateArena()
        self._compiled_for = None
        self._stages = []
        self._prepared: Dict[Tuple, SampleBuffer] = {}
        self._measured_lufs: Optional[float] = None
        self.normalization = None
        self._settings = self._prepare(settings or MasteringSettings())

    # -------------------------------------------------------------------------
    # Control surface (caller thread)
    # -------------------------------------------------------------------------

    @property
    def current_settings(self) -> MasteringSettings:
        return self._settings

    def update(self, settings: Union[MasteringSettings, Mapping[str, Any]]) -> MasteringSettings:
        """
        Swap in a new snapshot; takes effect at the next block.
        A mapping is applied as changes on top of the current snapshot, clamped.
        """
        if isinstance(settings, MasteringSettings):
            snapshot = settings
        else:
            snapshot = self._settings.replace(**dict(settings))
        self._settings = self._prepare(snapshot)
        return self._settings

    @property
    def bypassed(self) -> bool:
        return self._bypass

    def set_bypass(self, bypass: bool) -> None:
        self._bypass = bool(bypass)

    def seek(self, seconds: float) -> None:
        """Jump to a position; histories are cleared to avoid clicks from stale state."""
        frames = int(round(max(0.0, float(seconds)) * self.sample_rate))
        self._position = min(frames, self._source_for(self._settings).length)
        self._arena.reset()

    @property
    def position(self) -> float:
        return self._position / self.sample_rate

    @property
    def finished(self) -> bool:
        return self._position >= self._source_for(self._settings).length

    @property
    def source_lufs(self) -> Optional[float]:
        """Measured loudness of the source, once normalization has been requested."""
        return self._measured_lufs

    # -------------------------------------------------------------------------
    # Source preparation (caller thread, before the snapshot is published)
    # -------------------------------------------------------------------------

    @staticmethod
    def _source_key(settings: MasteringSettings) -> Tuple:
        if settings.normalize_loudness:
            return (True, settings.target_lufs)
        return (False, None)

    def _prepare(self, settings: MasteringSettings) -> MasteringSettings:
        key = self._source_key(settings)
        if key not in self._prepared:
            prepared, normalization = prepare_source(
                self.source, settings, self.sample_rate, measured_lufs=self._measured_lufs
            )
            if normalization is not None:
                self.normalization = normalization
                self._measured_lufs = normalization.measured_lufs
            self._prepared[key] = prepared
        return settings

    def _source_for(self, settings: MasteringSettings) -> SampleBuffer:
        return self._prepared[self._source_key(settings)]

    # -------------------------------------------------------------------------
    # Audio path
    # -------------------------------------------------------------------------

    def _stages_for(self, settings: MasteringSettings, bypass: bool):
        key = (settings, bypass)
        if self._compiled_for != key:
            effective = settings.neutral() if bypass else settings
            self._stages = build_stages(effective, self.sample_rate)
            self._compiled_for = key
        return self._stages

    def process(self, frames: int) -> np.ndarray:
        """
        Produce the next `frames` output frames, shape (channels, <= frames).
        Returns an empty block at the end of the source. Never raises on numeric faults:
        a bad block is replaced by silence and the graph state is cleared.
        """
        settings = self._settings
        bypass = self._bypass
        source = self._source_for(settings)
        stages = self._stages_for(settings, bypass)

        start = self._position
        end = min(start + max(0, int(frames)), source.length)
        self._position = end
        if end <= start:
            return np.zeros((source.num_channels, 0), dtype=np.float64)

        block = source.samples[:, start:end]
        try:
            return process_block(stages, self._arena, block)
        except RenderError:
            logger.error("[Preview] non-finite output at %.3fs; block muted and state reset", start / self.sample_rate)
            self._arena.reset()
            return np.zeros_like(block)
