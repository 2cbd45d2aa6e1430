"""
Tests for the glue compressor and the peak limiter.
Run from project root: python -m pytest tests/test_dynamics.py -v
"""
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import numpy as np
import pytest

from mastering.dsp.dynamics import (
    CompressorParams,
    DynamicsStage,
    build_dynamics_stages,
    glue_params,
    limiter_params,
    static_gain_db,
    time_coeff,
)
from mastering.params.settings import MasteringSettings
from mastering.render.graph import StateArena, process_block

SR = 44100


def _sine(freq=1000.0, seconds=1.0, amp=0.5, channels=2):
    t = np.arange(int(seconds * SR)) / SR
    return np.tile(amp * np.sin(2 * np.pi * freq * t), (channels, 1))


def _rms(x):
    return float(np.sqrt(np.mean(np.asarray(x) ** 2)))


def _run(stages, x, block_size=None):
    arena = StateArena()
    if block_size is None:
        return process_block(stages, arena, x)
    parts = [process_block(stages, arena, x[:, s:s + block_size]) for s in range(0, x.shape[1], block_size)]
    return np.concatenate(parts, axis=1)


class TestGainComputer:
    def test_below_threshold_no_change(self):
        p = CompressorParams(-18.0, 3.0, 10.0)
        assert static_gain_db(-40.0, p) == 0.0

    def test_above_knee_follows_ratio(self):
        p = CompressorParams(-18.0, 3.0, 10.0)
        # 12 dB over at 3:1 -> 8 dB of reduction
        assert static_gain_db(-6.0, p) == pytest.approx(-8.0)

    def test_knee_is_continuous(self):
        p = CompressorParams(-18.0, 3.0, 10.0)
        assert static_gain_db(-23.0, p) == pytest.approx(0.0, abs=1e-12)
        assert static_gain_db(-13.0, p) == pytest.approx(-(1 - 1 / 3) * 5.0)
        assert -(1 - 1 / 3) * 5.0 < static_gain_db(-18.0, p) < 0.0

    def test_unity_ratio_is_flat(self):
        p = CompressorParams(0.0, 1.0, 10.0)
        for level in (-60.0, -3.0, 0.0, 6.0):
            assert static_gain_db(level, p) == 0.0

    def test_time_coeff(self):
        assert time_coeff(0.0, SR) == 0.0
        assert 0.0 < time_coeff(0.02, SR) < time_coeff(0.25, SR) < 1.0


class TestDisabled:
    def test_disabled_is_exact_identity(self):
        settings = MasteringSettings(glue_compression=False, true_peak_limit=False)
        x = _sine(amp=1.0)
        assert np.array_equal(_run(build_dynamics_stages(settings, SR), x), x)

    def test_disabled_params(self):
        settings = MasteringSettings(glue_compression=False, true_peak_limit=False)
        assert glue_params(settings).ratio == 1.0
        assert limiter_params(settings).ratio == 1.0
        assert limiter_params(settings).clip_db == float("inf")


class TestLimiter:
    @pytest.mark.parametrize("ceiling", [-1.0, -3.0, -0.1])
    def test_never_exceeds_ceiling(self, ceiling):
        settings = MasteringSettings(true_peak_limit=True, ceiling_db=ceiling)
        stages = build_dynamics_stages(settings, SR)
        rng = np.random.default_rng(2)
        x = rng.uniform(-1.0, 1.0, size=(2, SR))
        y = _run(stages, x)
        assert np.max(np.abs(y)) <= 10 ** (ceiling / 20) + 1e-12

    def test_quiet_signal_untouched(self):
        settings = MasteringSettings(true_peak_limit=True, ceiling_db=-1.0)
        x = _sine(amp=0.1)
        y = _run(build_dynamics_stages(settings, SR), x)
        assert np.allclose(y, x, atol=1e-12)

    def test_stereo_linked(self):
        """One gain for both channels: a loud left channel also turns down the right."""
        settings = MasteringSettings(true_peak_limit=True, ceiling_db=-6.0)
        x = np.vstack([_sine(amp=1.0, channels=1)[0], _sine(amp=0.1, channels=1)[0]])
        y = _run(build_dynamics_stages(settings, SR), x)
        tail = slice(SR // 2, None)
        assert _rms(y[1, tail]) < _rms(x[1, tail]) * 0.8


class TestGlue:
    def test_reduces_loud_signal(self):
        settings = MasteringSettings(glue_compression=True, true_peak_limit=False)
        stages = build_dynamics_stages(settings, SR)
        x = _sine(amp=0.5, seconds=2.0)
        y = _run(stages, x)
        tail = slice(SR, None)
        assert _rms(y[:, tail]) < _rms(x[:, tail]) * 10 ** (-3 / 20)

    def test_quiet_signal_untouched(self):
        settings = MasteringSettings(glue_compression=True, true_peak_limit=False)
        x = _sine(amp=0.01)
        y = _run(build_dynamics_stages(settings, SR), x)
        assert np.allclose(y, x, atol=1e-12)


def test_block_size_invariance():
    settings = MasteringSettings(glue_compression=True, true_peak_limit=True, ceiling_db=-2.0)
    stages = build_dynamics_stages(settings, SR)
    rng = np.random.default_rng(3)
    x = rng.uniform(-1.0, 1.0, size=(2, 20000))
    whole = _run(stages, x)
    for block_size in (1, 128, 4096):
        assert np.array_equal(_run(stages, x, block_size), whole)


def test_envelope_state_in_arena():
    stage = DynamicsStage("limiter", CompressorParams(-6.0, 20.0, 0.0, 0.001, 0.05), SR)
    arena = StateArena()
    stage.apply(_sine(amp=1.0, seconds=0.1), arena)
    assert "limiter" in arena
    arena.reset()
    assert np.all(arena.get("limiter", lambda: None) == 0.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
