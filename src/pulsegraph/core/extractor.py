"""
Feature extraction module for audio analysis.

Turns a raw sample buffer into the drivers consumed by the node graph:
beat markers, transients, a loudness contour, a magnitude spectrum
and a tempo estimate.
"""

from dataclasses import dataclass, field

import librosa
import numpy as np
from scipy import fft as scipy_fft

from pulsegraph.config import AnalysisConfig


def _empty() -> np.ndarray:
    return np.array([], dtype=float)


@dataclass
class AnalysisSnapshot:
    """
    Analysis data an evaluation reads from.

    Beat and transient timestamps are always in seconds. Detection runs on
    sample indices and is converted once, when the snapshot is built.
    """

    beat_timestamps: np.ndarray = field(default_factory=_empty)
    transient_timestamps: np.ndarray = field(default_factory=_empty)
    loudness_contour: np.ndarray = field(default_factory=_empty)
    frequency_bands: np.ndarray = field(default_factory=_empty)
    tempo_estimate: float = 0.0
    current_time: float = 0.0

    # Timing of the analysis, 0 when unknown (e.g. hand-written snapshots)
    sample_rate: int = 0
    loudness_hop_length: int = 0

    @property
    def duration(self) -> float:
        """Duration covered by the loudness contour, in seconds."""
        if self.sample_rate <= 0 or self.loudness_hop_length <= 0:
            return 0.0
        return len(self.loudness_contour) * self.loudness_hop_length / self.sample_rate


def estimate_tempo(beat_samples: np.ndarray, sr: int) -> float:
    """
    Estimate tempo from beat positions.

    Args:
        beat_samples: Ascending beat positions as sample indices.
        sr: Sample rate used to convert index deltas to seconds.

    Returns:
        Beats per minute, or 0.0 with fewer than two beats.
    """
    beat_samples = np.asarray(beat_samples, dtype=float)
    if len(beat_samples) < 2 or sr <= 0:
        return 0.0

    intervals = np.diff(beat_samples) / sr
    average = float(np.mean(intervals))
    if average <= 0:
        return 0.0
    return 60.0 / average


class FeatureExtractor:
    """
    Extracts beat, transient, loudness and spectrum features.

    Every method is deterministic and free of side effects; empty input
    produces empty output rather than errors.
    """

    def __init__(self, config: AnalysisConfig | None = None):
        """
        Initialize the extractor.

        Args:
            config: Detection thresholds and window sizes.
        """
        self.config = config or AnalysisConfig()

    def detect_beats(self, y: np.ndarray, sr: int) -> np.ndarray:
        """
        Find windows whose energy exceeds the threshold.

        No refractory period is applied: a sustained loud passage yields a
        marker at every hop, not only at its onset.

        Returns:
            Starting sample index of every qualifying window.
        """
        window, hop = self.config.beat_window(sr)
        if len(y) < window:
            return np.array([], dtype=int)

        frames = librosa.util.frame(y, frame_length=window, hop_length=hop)
        energy = np.sum(frames ** 2, axis=0)
        starts = np.arange(frames.shape[1]) * hop
        return starts[energy > self.config.energy_threshold]

    def detect_transients(self, y: np.ndarray) -> np.ndarray:
        """
        Find abrupt sample-to-sample jumps.

        Returns:
            Index i of every sample where |y[i] - y[i-1]| exceeds the threshold.
        """
        if len(y) < 2:
            return np.array([], dtype=int)
        jumps = np.abs(np.diff(y))
        return np.flatnonzero(jumps > self.config.transient_threshold) + 1

    def loudness_contour(self, y: np.ndarray, sr: int) -> np.ndarray:
        """
        Compute windowed RMS, one value per hop.

        The last windows run past the end of the buffer and are zero-padded.
        """
        if len(y) == 0:
            return _empty()

        window, hop = self.config.loudness_window(sr)
        n_values = -(-len(y) // hop)
        padded = np.zeros((n_values - 1) * hop + window)
        padded[: len(y)] = y

        return librosa.feature.rms(
            y=padded,
            frame_length=window,
            hop_length=hop,
            center=False,
            dtype=np.float64,
        )[0]

    def frequency_bands(self, y: np.ndarray) -> np.ndarray:
        """
        Magnitude spectrum of the buffer prefix.

        Only the first spectrum_size samples are analyzed, zero-padded when
        the buffer is shorter.
        """
        size = self.config.spectrum_size
        frame = np.zeros(size)
        prefix = y[:size]
        frame[: len(prefix)] = prefix
        return np.abs(scipy_fft.fft(frame))

    def extract(self, samples, sr: int) -> AnalysisSnapshot:
        """
        Run complete feature extraction on a sample buffer.

        Args:
            samples: Mono audio samples.
            sr: Sample rate in Hz.

        Returns:
            AnalysisSnapshot with timestamps converted to seconds.
        """
        y = np.asarray(samples, dtype=np.float64).ravel()
        if sr <= 0:
            return AnalysisSnapshot(frequency_bands=self.frequency_bands(_empty()))

        beat_samples = self.detect_beats(y, sr)
        transient_samples = self.detect_transients(y)
        _, loudness_hop = self.config.loudness_window(sr)

        return AnalysisSnapshot(
            beat_timestamps=librosa.samples_to_time(beat_samples, sr=sr),
            transient_timestamps=librosa.samples_to_time(transient_samples, sr=sr),
            loudness_contour=self.loudness_contour(y, sr),
            frequency_bands=self.frequency_bands(y),
            tempo_estimate=estimate_tempo(beat_samples, sr),
            sample_rate=int(sr),
            loudness_hop_length=loudness_hop,
        )


def extract_features(
    samples,
    sample_rate: int,
    config: AnalysisConfig | None = None,
) -> AnalysisSnapshot:
    """Convenience wrapper around FeatureExtractor.extract."""
    return FeatureExtractor(config).extract(samples, sample_rate)
