"""
Defaults snapshot, clamping, key aliases and presets for MasteringSettings.
Single source of defaults is params.schema.PARAM_SCHEMA; snapshots detect drift.
Run from project root: python -m pytest tests/test_settings.py -v
"""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import logging

import pytest

from mastering.params import (
    EQ_PRESETS,
    PARAM_SCHEMA,
    MasteringSettings,
    active_eq_preset,
    apply_eq_preset,
    apply_output_preset,
    clamp_params,
    resolve_params,
)


def test_defaults_snapshot():
    s = MasteringSettings()
    assert s.input_gain_db == 0.0
    assert s.normalize_loudness is True
    assert s.target_lufs == -14.0
    assert s.true_peak_limit is True
    assert s.ceiling_db == -1.0
    assert s.clean_low_end is True
    assert s.glue_compression is False
    assert (s.cut_mud, s.add_air, s.tame_harsh) == (False, False, False)
    assert s.eq_bands == (0.0, 0.0, 0.0, 0.0, 0.0)
    assert s.stereo_width_percent == 100.0
    assert s.output_sample_rate_hz == 44100
    assert s.output_bit_depth == 16


def test_schema_and_dataclass_agree():
    assert set(PARAM_SCHEMA) == set(MasteringSettings().to_dict())
    assert resolve_params({}) == MasteringSettings().to_dict()


class TestClamp:
    def test_ranges(self):
        s = MasteringSettings.from_dict({
            "input_gain_db": 40.0,
            "ceiling_db": 3.0,
            "target_lufs": -60.0,
            "eq_mid_db": -99.0,
            "stereo_width_percent": 250.0,
            "output_sample_rate_hz": 1000,
        })
        assert s.input_gain_db == 12.0
        assert s.ceiling_db == 0.0
        assert s.target_lufs == -30.0
        assert s.eq_mid_db == -12.0
        assert s.stereo_width_percent == 200.0
        assert s.output_sample_rate_hz == 8000

    @pytest.mark.parametrize("raw,expected", [(8, 16), (16, 16), (20, 16), (21, 24), (32, 24)])
    def test_bit_depth_snaps(self, raw, expected):
        assert MasteringSettings(output_bit_depth=raw).output_bit_depth == expected

    def test_malformed_values_fall_back(self):
        s = MasteringSettings.from_dict({"eq_low_db": "loud", "ceiling_db": float("nan"), "add_air": "yes"})
        assert s.eq_low_db == 0.0
        assert s.ceiling_db == -1.0
        assert s.add_air is True

    def test_direct_construction_is_clamped(self):
        assert MasteringSettings(input_gain_db=-100.0).input_gain_db == -12.0

    def test_clamp_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            clamp_params({"ceiling_db": 5.0})
        assert any("ceiling_db" in r.message for r in caplog.records)

    def test_clamp_does_not_mutate(self):
        params = {"ceiling_db": 5.0}
        clamp_params(params)
        assert params == {"ceiling_db": 5.0}


class TestKeys:
    def test_camel_case(self):
        s = MasteringSettings.from_dict({
            "inputGainDb": 3.0,
            "eqLowMid": -2.0,
            "stereoWidthPercent": 120,
            "glueCompression": True,
            "ceilingDb": -0.5,
        })
        assert s.input_gain_db == 3.0
        assert s.eq_low_mid_db == -2.0
        assert s.stereo_width_percent == 120.0
        assert s.glue_compression is True
        assert s.ceiling_db == -0.5

    def test_canonical_name_wins(self):
        s = MasteringSettings.from_dict({"eqHigh": 4.0, "eq_high_db": -4.0})
        assert s.eq_high_db == -4.0

    def test_unknown_keys_ignored(self):
        assert MasteringSettings.from_dict({"centerBass": True}) == MasteringSettings()

    def test_replace(self):
        base = MasteringSettings()
        changed = base.replace(addAir=True, eq_low_db=30.0)
        assert changed.add_air is True
        assert changed.eq_low_db == 12.0
        assert base.add_air is False


class TestSnapshot:
    def test_frozen(self):
        with pytest.raises(Exception):
            MasteringSettings().ceiling_db = 0.0

    def test_hashable_and_equal(self):
        assert MasteringSettings(eq_mid_db=2.0) == MasteringSettings.from_dict({"eqMid": 2.0})
        assert len({MasteringSettings(), MasteringSettings()}) == 1

    def test_neutral(self):
        s = MasteringSettings(
            input_gain_db=6.0, eq_low_db=3.0, glue_compression=True, add_air=True,
            stereo_width_percent=150, target_lufs=-16.0, output_bit_depth=24,
        )
        n = s.neutral()
        assert n.input_gain_db == 0.0
        assert n.eq_bands == (0.0,) * 5
        assert not (n.glue_compression or n.true_peak_limit or n.clean_low_end or n.add_air)
        assert n.stereo_width_percent == 100.0
        assert n.target_lufs == -16.0
        assert n.output_bit_depth == 24


class TestPresets:
    def test_apply_eq_preset(self):
        s = apply_eq_preset(MasteringSettings(), "bass")
        assert s.eq_bands == (6.0, 3.0, 0.0, -1.0, -2.0)
        assert active_eq_preset(s) == "bass"

    def test_manual_move_clears_preset(self):
        s = apply_eq_preset(MasteringSettings(), "vocal").replace(eq_mid_db=0.5)
        assert active_eq_preset(s) is None

    def test_defaults_are_flat(self):
        assert active_eq_preset(MasteringSettings()) == "flat"

    def test_all_presets_in_range(self):
        for name in EQ_PRESETS:
            s = apply_eq_preset(MasteringSettings(), name)
            assert active_eq_preset(s) == name

    def test_output_presets(self):
        studio = apply_output_preset(MasteringSettings(), "studio")
        assert (studio.output_sample_rate_hz, studio.output_bit_depth) == (48000, 24)
        streaming = apply_output_preset(studio, "streaming")
        assert (streaming.output_sample_rate_hz, streaming.output_bit_depth) == (44100, 16)

    def test_unknown_preset(self):
        with pytest.raises(KeyError):
            apply_eq_preset(MasteringSettings(), "loudness-war")
        with pytest.raises(KeyError):
            apply_output_preset(MasteringSettings(), "cassette")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
