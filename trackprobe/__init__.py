from trackprobe.probe.base import (
    DecodeError,
    QuotaExceededError,
    StreamError,
    Track,
    TrackExtractionError,
    UnsupportedFormatError,
)
from trackprobe.probe.track_extractor import extract_tracks

__all__ = [
    "extract_tracks",
    "Track",
    "TrackExtractionError",
    "UnsupportedFormatError",
    "QuotaExceededError",
    "StreamError",
    "DecodeError",
]
