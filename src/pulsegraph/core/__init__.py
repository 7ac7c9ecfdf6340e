"""Core audio analysis modules."""

from pulsegraph.core.extractor import (
    AnalysisSnapshot,
    FeatureExtractor,
    estimate_tempo,
    extract_features,
)
from pulsegraph.core.loader import AudioLoader, LoadedAudio

__all__ = [
    "AnalysisSnapshot",
    "AudioLoader",
    "FeatureExtractor",
    "LoadedAudio",
    "estimate_tempo",
    "extract_features",
]
