"""
Quality Control analysis for rendered masters.
Detects common failure modes: overs above the ceiling, missed loudness target,
over-limiting, phase problems and silent output.
"""
import numpy as np
import torch
from typing import Dict

from mastering.analysis.loudness import measure_lufs
from mastering.analysis.thresholds import QC_THRESHOLDS
from mastering.core.io import AudioIO
from mastering.core.types import SampleBuffer

# Spectral balance bands (Hz)
LOW_BAND = (20.0, 250.0)
MID_BAND = (250.0, 4000.0)
HIGH_BAND = (4000.0, 20000.0)


def _db(x: float) -> float:
    """Convert linear to dB."""
    if x <= 0:
        return -np.inf
    return 20.0 * np.log10(abs(x))


def _band_energy(audio: torch.Tensor, sample_rate: int, low_hz: float, high_hz: float) -> float:
    """Compute energy in frequency band using FFT magnitude."""
    n = len(audio)
    if n < 2:
        return 0.0

    n_fft = 2 ** int(np.ceil(np.log2(n)))
    fft = torch.fft.rfft(audio, n=n_fft)
    magnitude = torch.abs(fft)

    freqs = torch.fft.rfftfreq(n_fft, 1.0 / sample_rate)

    mask = (freqs >= low_hz) & (freqs <= min(high_hz, sample_rate / 2.0))
    return float(torch.sum(magnitude[mask] ** 2))


def _correlation(left: torch.Tensor, right: torch.Tensor) -> float:
    """Zero-lag normalized correlation; 1.0 for identical channels, 0.0 if either is silent."""
    denom = torch.sqrt(torch.sum(left ** 2) * torch.sum(right ** 2))
    if float(denom) < 1e-12:
        return 0.0
    return float(torch.sum(left * right) / denom)


def analyze(buffer: SampleBuffer, ceiling_db: float = -1.0, target_lufs: float = -14.0) -> Dict:
    """
    Analyze a rendered master for QC issues.

    Args:
        buffer: Rendered audio
        ceiling_db: Limiter ceiling the master was rendered with
        target_lufs: Loudness target the master was normalized to

    Returns:
        Dict with status ("PASS" | "WARN" | "FAIL"), metrics, failures and warnings
    """
    audio = AudioIO.to_tensor(buffer)
    sample_rate = buffer.sample_rate

    channel_peaks = [float(torch.max(torch.abs(ch))) if ch.numel() else 0.0 for ch in audio]
    peak = max(channel_peaks) if channel_peaks else 0.0
    peak_dbfs = _db(peak)

    rms = float(torch.sqrt(torch.mean(audio ** 2) + 1e-12)) if audio.numel() else 0.0
    rms_dbfs = _db(rms)
    crest_factor = peak / (rms + 1e-12)

    lufs = measure_lufs(buffer)

    # Spectral balance on the channel sum
    mono = torch.mean(audio, dim=0)
    low = _band_energy(mono, sample_rate, *LOW_BAND)
    mid = _band_energy(mono, sample_rate, *MID_BAND)
    high = _band_energy(mono, sample_rate, *HIGH_BAND)
    total = low + mid + high

    metrics = {
        "peak_dbfs": peak_dbfs,
        "channel_peak_dbfs": [_db(p) for p in channel_peaks],
        "rms_dbfs": rms_dbfs,
        "crest_factor": crest_factor,
        "integrated_lufs": lufs,
        "low_ratio": low / total if total > 1e-12 else 0.0,
        "mid_ratio": mid / total if total > 1e-12 else 0.0,
        "high_ratio": high / total if total > 1e-12 else 0.0,
        "duration_s": buffer.duration,
        "sample_rate": sample_rate,
    }
    if buffer.num_channels == 2:
        metrics["correlation"] = _correlation(audio[0], audio[1])

    failures = []
    warnings = []

    # Silence
    if peak_dbfs < QC_THRESHOLDS["silence_dbfs"]:
        failures.append(f"Output is silent: peak {peak_dbfs:.2f} dBFS")
    else:
        # Peak check
        overshoot = peak_dbfs - ceiling_db
        if overshoot > QC_THRESHOLDS["peak_overshoot_db"]:
            warnings.append(f"Peak above ceiling: {peak_dbfs:.2f} dBFS > {ceiling_db:.2f} dBFS")
        if peak_dbfs > 0.0:
            failures.append(f"Clipping: {peak_dbfs:.2f} dBFS > 0 dBFS")

        # Loudness check
        if np.isfinite(lufs):
            miss = abs(lufs - target_lufs)
            if miss > QC_THRESHOLDS["lufs_fail_tolerance"]:
                failures.append(f"Loudness off target: {lufs:.2f} LUFS vs {target_lufs:.2f} LUFS")
            elif miss > QC_THRESHOLDS["lufs_tolerance"]:
                warnings.append(f"Loudness near target: {lufs:.2f} LUFS vs {target_lufs:.2f} LUFS")
        else:
            warnings.append("Integrated loudness undefined (too short or too quiet)")

        if crest_factor < QC_THRESHOLDS["crest_factor_min"]:
            warnings.append(f"Crest factor low (over-limited?): {crest_factor:.2f} < {QC_THRESHOLDS['crest_factor_min']:.2f}")

        correlation = metrics.get("correlation")
        if correlation is not None and correlation < QC_THRESHOLDS["correlation_min"]:
            warnings.append(f"Negative stereo correlation: {correlation:.2f} (mono compatibility)")

    # Overall status
    status = "PASS"
    if failures:
        status = "FAIL"
    elif warnings:
        status = "WARN"

    return {
        "status": status,
        "metrics": metrics,
        "failures": failures,
        "warnings": warnings,
    }
