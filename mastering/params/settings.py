"""
MasteringSettings: immutable, clamped snapshot of every control.
One snapshot is passed into each render/update call; nothing reads shared mutable settings.
"""
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional, Tuple

from mastering.params.resolve import normalize_keys, resolve_params
from mastering.params.schema import EQ_BAND_FIELDS


@dataclass(frozen=True)
class MasteringSettings:
    input_gain_db: float = 0.0
    normalize_loudness: bool = True
    target_lufs: float = -14.0
    true_peak_limit: bool = True
    ceiling_db: float = -1.0
    clean_low_end: bool = True
    glue_compression: bool = False
    cut_mud: bool = False
    add_air: bool = False
    tame_harsh: bool = False
    eq_low_db: float = 0.0
    eq_low_mid_db: float = 0.0
    eq_mid_db: float = 0.0
    eq_high_mid_db: float = 0.0
    eq_high_db: float = 0.0
    stereo_width_percent: float = 100.0
    output_sample_rate_hz: int = 44100
    output_bit_depth: int = 16

    def __post_init__(self):
        # Direct construction goes through the same clamp as from_dict
        resolved = resolve_params(asdict(self))
        for name, value in resolved.items():
            object.__setattr__(self, name, value)

    @classmethod
    def from_dict(cls, params: Optional[Mapping[str, Any]] = None) -> "MasteringSettings":
        """Build from snake_case or camelCase keys; missing fields take defaults."""
        return cls(**resolve_params(params))

    def replace(self, **changes: Any) -> "MasteringSettings":
        """New snapshot with changes applied (aliases accepted), clamped."""
        merged = self.to_dict()
        merged.update(normalize_keys(changes))
        return MasteringSettings.from_dict(merged)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @property
    def eq_bands(self) -> Tuple[float, float, float, float, float]:
        return tuple(getattr(self, name) for name in EQ_BAND_FIELDS)

    @property
    def stereo_width(self) -> float:
        """Width as a factor: 0.0 mono, 1.0 unity, 2.0 double side."""
        return self.stereo_width_percent / 100.0

    def neutral(self) -> "MasteringSettings":
        """
        Bypass snapshot: every stage at its identity parameters, input gain 0 dB, width 100%.
        Loudness normalization and output format are kept.
        """
        return MasteringSettings(
            normalize_loudness=self.normalize_loudness,
            target_lufs=self.target_lufs,
            true_peak_limit=False,
            ceiling_db=self.ceiling_db,
            clean_low_end=False,
            glue_compression=False,
            output_sample_rate_hz=self.output_sample_rate_hz,
            output_bit_depth=self.output_bit_depth,
        )
