"""
Loudness measurement and Quality Control for rendered masters.
"""
from mastering.analysis.loudness import measure_lufs, normalize_to_lufs
from mastering.analysis.qc import analyze
from mastering.analysis.thresholds import QC_THRESHOLDS

__all__ = ["measure_lufs", "normalize_to_lufs", "analyze", "QC_THRESHOLDS"]
