"""
Audio file loading.

Reads audio files into mono sample buffers ready for feature extraction.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import librosa
import numpy as np

from pulsegraph.errors import AudioLoadError

logger = logging.getLogger(__name__)


@dataclass
class LoadedAudio:
    """Container for a decoded mono signal."""

    samples: np.ndarray
    sample_rate: int
    duration: float

    @property
    def n_samples(self) -> int:
        """Total number of samples in the signal."""
        return len(self.samples)


class AudioLoader:
    """Loads audio files as mono float buffers."""

    def __init__(self, sample_rate: int | None = 44100):
        """
        Initialize the loader.

        Args:
            sample_rate: Target sample rate. None preserves the file's rate.
        """
        self.sample_rate = sample_rate

    def load(self, audio_path: Union[str, Path]) -> LoadedAudio:
        """
        Load audio from file.

        Args:
            audio_path: Path to audio file (wav, mp3, flac).

        Returns:
            LoadedAudio with mono samples.

        Raises:
            AudioLoadError: If the file is missing or cannot be decoded.
        """
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise AudioLoadError(f"Audio file not found: {audio_path}")

        try:
            y, sr = librosa.load(audio_path, sr=self.sample_rate, mono=True)
        except Exception as e:
            raise AudioLoadError(f"Could not decode {audio_path}: {e}") from e

        duration = librosa.get_duration(y=y, sr=sr)
        logger.debug("Loaded %s: %d samples at %d Hz", audio_path, len(y), sr)

        return LoadedAudio(samples=y, sample_rate=int(sr), duration=duration)
