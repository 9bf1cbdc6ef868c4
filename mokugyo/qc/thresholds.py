"""
Default QC thresholds for rendered streams.
"""
QC_THRESHOLDS = {
    "stream": {
        "peak_linear_max": 0.9 + 1e-3,   # knock volume
        "clipped_samples_max": 0,        # samples at or beyond full scale
        "silence_level": 1e-6,           # |x| at or below this counts as silence
        "region_gap_s": 0.05,            # silence shorter than this joins regions
        "leak_samples_max": 0,           # non-silent samples outside event windows
    },
}
