"""Tests for the ReactivePipeline module."""

import json

import numpy as np
import pytest

from pulsegraph.core.extractor import AnalysisSnapshot
from pulsegraph.core.loader import AudioLoader, LoadedAudio
from pulsegraph.errors import AudioLoadError
from pulsegraph.pipeline import ReactivePipeline


@pytest.fixture(autouse=True)
def isolated_cache(tmp_path, monkeypatch):
    """Keep snapshot caching out of the user's home directory."""
    cache_dir = tmp_path / "cache"
    cache_dir.mkdir()
    monkeypatch.setattr(ReactivePipeline, "_get_cache_dir", lambda self: cache_dir)
    return cache_dir


class TestAudioLoader:
    """Tests for audio file loading."""

    def test_load_file(self, temp_audio_file, sample_rate):
        result = AudioLoader(sample_rate=sample_rate).load(temp_audio_file)

        assert isinstance(result, LoadedAudio)
        assert result.sample_rate == sample_rate
        assert result.n_samples == 2 * sample_rate
        assert result.duration == pytest.approx(2.0)

    def test_missing_file(self, tmp_path):
        with pytest.raises(AudioLoadError):
            AudioLoader().load(tmp_path / "missing.wav")

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "noise.wav"
        path.write_bytes(b"definitely not audio")

        with pytest.raises(AudioLoadError):
            AudioLoader().load(path)


class TestReactivePipeline:
    """Tests for the complete pipeline."""

    def test_analyze_file(self, temp_audio_file):
        """analyze_file() should return an AnalysisSnapshot with timing."""
        result = ReactivePipeline().analyze_file(temp_audio_file, use_cache=False)

        assert isinstance(result, AnalysisSnapshot)
        assert result.sample_rate == 44100
        assert result.loudness_hop_length == 1102
        assert np.allclose(result.transient_timestamps, [0.5, 1.0, 1.5])

    def test_evaluator_uses_snapshot_timing(self, temp_audio_file):
        """Loudness lookup should follow the analysis hop."""
        pipeline = ReactivePipeline()
        snapshot = pipeline.analyze_file(temp_audio_file, use_cache=False)

        config = pipeline.evaluator_for(snapshot).config

        assert config.loudness_sample_rate == 44100
        assert config.loudness_hop_length == 1102

    def test_evaluator_defaults_without_timing(self, beat_snapshot):
        """Hand-written snapshots keep the configured loudness timing."""
        config = ReactivePipeline().evaluator_for(beat_snapshot).config

        assert config.loudness_sample_rate == 44100
        assert config.loudness_hop_length == 1024

    def test_process_full_pipeline(self, temp_audio_file, beat_cut_graph):
        """process() should run complete pipeline."""
        pipeline = ReactivePipeline(fps=60)
        result = pipeline.process(temp_audio_file, beat_cut_graph)

        assert "snapshot" in result
        assert "timeline" in result
        assert "tempo" in result
        assert "duration" in result
        assert result["fps"] == 60
        assert result["n_frames"] == len(result["timeline"]["frames"])
        assert result["n_actions"] > 0

    def test_process_cuts_near_clicks(self, temp_audio_file, beat_cut_graph):
        """Every cut should fall within the beat tolerance of a detected beat."""
        result = ReactivePipeline(fps=30).process(temp_audio_file, beat_cut_graph)
        beats = result["snapshot"].beat_timestamps

        for frame in result["timeline"]["frames"]:
            for action in frame["actions"]:
                assert np.min(np.abs(beats - frame["time"])) < 0.1

    def test_process_with_json_output(self, temp_audio_file, beat_cut_graph, tmp_path):
        """process() should write JSON when output_path provided."""
        output_path = tmp_path / "timeline.json"

        result = ReactivePipeline().process(
            temp_audio_file, beat_cut_graph, output_path=output_path
        )

        assert result["output_path"] == str(output_path)
        with open(output_path) as f:
            data = json.load(f)
        assert data["metadata"]["n_actions"] == result["n_actions"]

    def test_process_missing_file(self, tmp_path, beat_cut_graph):
        with pytest.raises(AudioLoadError):
            ReactivePipeline().process(tmp_path / "missing.wav", beat_cut_graph)
