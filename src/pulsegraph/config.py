"""
Tunable constants for feature extraction and graph evaluation.

All thresholds that drive detection or node behaviour live here with
named defaults, so callers can adjust them without touching the algorithms.
"""

from dataclasses import dataclass
from enum import Enum


class EvaluationOrder(str, Enum):
    """Order in which the evaluator visits graph nodes."""

    # Dependency order derived from edges; cycles are rejected.
    TOPOLOGICAL = "topological"
    # Fixed input -> logic -> output passes in declaration order.
    PHASED = "phased"


@dataclass
class AnalysisConfig:
    """Parameters for FeatureExtractor."""

    beat_window_seconds: float = 0.1  # Energy window length
    beat_hop_divisor: int = 4  # hop = window // divisor
    energy_threshold: float = 0.1  # Sum of squares per window
    transient_threshold: float = 0.3  # Absolute sample-to-sample jump
    loudness_window_seconds: float = 0.05  # RMS window length
    loudness_hop_divisor: int = 2  # hop = window // divisor
    spectrum_size: int = 2048  # FFT size over the buffer prefix

    def beat_window(self, sr: int) -> tuple[int, int]:
        """Return (window, hop) in samples for beat detection."""
        window = max(1, int(self.beat_window_seconds * sr))
        return window, max(1, window // self.beat_hop_divisor)

    def loudness_window(self, sr: int) -> tuple[int, int]:
        """Return (window, hop) in samples for the loudness contour."""
        window = max(1, int(self.loudness_window_seconds * sr))
        return window, max(1, window // self.loudness_hop_divisor)


@dataclass
class EvaluatorConfig:
    """Parameters for GraphEvaluator."""

    beat_tolerance: float = 0.1  # Seconds around playback time
    transient_tolerance: float = 0.05  # Seconds around playback time
    trigger_threshold: float = 0.5  # Values above this count as "on"

    # Timing used to index the loudness contour. The defaults match a
    # 44.1kHz analysis with a 1024-sample hop.
    loudness_sample_rate: int = 44100
    loudness_hop_length: int = 1024

    order: EvaluationOrder = EvaluationOrder.TOPOLOGICAL
