"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from pulsegraph.core.extractor import AnalysisSnapshot
from pulsegraph.graph.model import Graph
from pulsegraph.graph.templates import create_node

# Default sample rate for test audio
TEST_SR = 44100


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def pure_sine(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate a pure 440Hz sine wave (A4 note).

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    duration = 2.0
    t = np.arange(int(sample_rate * duration)) / sample_rate
    y = 0.5 * np.sin(2 * np.pi * 440.0 * t)
    return y.astype(np.float32), sample_rate


@pytest.fixture
def click_track(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate a simple click track at 120 BPM.

    Clicks start at 0.0, 0.5, 1.0 and 1.5 seconds.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    duration = 2.0
    bpm = 120
    samples_per_beat = int(sample_rate * 60 / bpm)
    total_samples = int(sample_rate * duration)

    y = np.zeros(total_samples, dtype=np.float32)

    # Add clicks (short impulses) at each beat
    click_duration = int(sample_rate * 0.01)  # 10ms click
    for beat_start in range(0, total_samples, samples_per_beat):
        click_end = min(beat_start + click_duration, total_samples)
        click_samples = click_end - beat_start
        decay = np.exp(-np.linspace(0, 5, click_samples))
        y[beat_start:click_end] = 0.8 * decay

    return y, sample_rate


@pytest.fixture
def temp_audio_file(tmp_path, click_track):
    """Create a temporary audio file for testing file I/O."""
    import soundfile as sf

    y, sr = click_track
    audio_path = tmp_path / "test_audio.wav"
    sf.write(audio_path, y, sr)
    return audio_path


@pytest.fixture
def beat_snapshot() -> AnalysisSnapshot:
    """Hand-written snapshot with beats once per second."""
    return AnalysisSnapshot(
        beat_timestamps=np.array([1.0, 2.0, 3.0]),
        transient_timestamps=np.array([2.0]),
        loudness_contour=np.array([0.5, 0.7, 0.3]),
        current_time=1.0,
    )


@pytest.fixture
def beat_cut_graph() -> Graph:
    """Beat markers wired straight into a video cut."""
    graph = Graph()
    graph.add_node(create_node("input-beat-markers", "beat1"))
    graph.add_node(create_node("output-cut-video", "cut1", x=200))
    graph.connect("beat1", "beats", "cut1", "trigger", edge_id="edge1")
    return graph
