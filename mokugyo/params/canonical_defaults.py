"""
Canonical render defaults: single source for run configuration.
The sound itself is defined by params.timbre.DEFAULT_TIMBRE; this dict covers
the stream, the scheduler, the external encoder and the service.
"""

from typing import Dict, Any

ENGINE_DEFAULTS: Dict[str, Any] = {
    "output": "ding.mp3",
    "stream": {
        "duration_min": 90,
        "sample_rate": 22050,
    },
    "schedule": {
        # Random spacing between knocks: 3 to 5 minutes
        "interval_min_s": 180.0,
        "interval_max_s": 300.0,
    },
    "mix": {
        "overlap": "overwrite",
    },
    "encode": {
        "bitrate": "128k",
        "codecs": {
            "mp3": "libmp3lame",
            "ogg": "libvorbis",
            "opus": "libopus",
            "m4a": "aac",
            "aac": "aac",
        },
    },
    "service": {
        "max_duration_min": 10,
    },
}
