"""
Default QC thresholds for a streaming master.
"""
QC_THRESHOLDS = {
    "lufs_tolerance": 1.0,        # |integrated - target| above this -> warning
    "lufs_fail_tolerance": 3.0,   # above this -> failure
    "peak_overshoot_db": 0.3,     # peak may exceed the ceiling by at most this
    "crest_factor_min": 1.5,      # below this the master is likely over-limited
    "correlation_min": -0.2,      # below this -> mono-compatibility warning
    "silence_dbfs": -90.0,        # peak below this is treated as silence
}
