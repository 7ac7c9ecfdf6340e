"""Tests for ReactivePipeline snapshot caching."""

from unittest.mock import patch

import numpy as np

from pulsegraph.config import AnalysisConfig
from pulsegraph.pipeline import ReactivePipeline


def test_pipeline_caching(temp_audio_file, beat_cut_graph, tmp_path, monkeypatch):
    """Test that caching works correctly (miss, hit, bypass)."""
    monkeypatch.setattr(ReactivePipeline, "_get_cache_dir", lambda self: tmp_path)

    pipeline = ReactivePipeline(fps=60)

    # 1. First run: analyzes and saves to cache
    with patch.object(pipeline, "load", wraps=pipeline.load) as mock_load:
        result1 = pipeline.process(temp_audio_file, beat_cut_graph)
        assert mock_load.called

    cache_files = list(tmp_path.glob("snapshot_*.json"))
    assert len(cache_files) == 1

    # 2. Second run: loads from cache without decoding audio
    with patch.object(pipeline, "load", wraps=pipeline.load) as mock_load:
        result2 = pipeline.process(temp_audio_file, beat_cut_graph)
        assert not mock_load.called, "Should have used cache"

    for name in ("beat_timestamps", "transient_timestamps", "loudness_contour"):
        assert np.array_equal(
            getattr(result1["snapshot"], name),
            getattr(result2["snapshot"], name),
        )
    assert result2["timeline"] == result1["timeline"]

    # 3. use_cache=False: analyzes again
    with patch.object(pipeline, "load", wraps=pipeline.load) as mock_load:
        result3 = pipeline.process(temp_audio_file, beat_cut_graph, use_cache=False)
        assert mock_load.called, "Should have re-analyzed"
        assert result3["tempo"] == result1["tempo"]


def test_cache_differentiation(temp_audio_file, tmp_path, monkeypatch):
    """Analysis settings key the cache; timeline settings do not."""
    monkeypatch.setattr(ReactivePipeline, "_get_cache_dir", lambda self: tmp_path)

    ReactivePipeline(fps=60).analyze_file(temp_audio_file)
    assert len(list(tmp_path.glob("*.json"))) == 1

    # Frame rate only affects the timeline
    ReactivePipeline(fps=30).analyze_file(temp_audio_file)
    assert len(list(tmp_path.glob("*.json"))) == 1

    ReactivePipeline(sample_rate=22050).analyze_file(temp_audio_file)
    assert len(list(tmp_path.glob("*.json"))) == 2

    ReactivePipeline(
        analysis_config=AnalysisConfig(transient_threshold=0.5)
    ).analyze_file(temp_audio_file)
    assert len(list(tmp_path.glob("*.json"))) == 3


def test_corrupt_cache_is_ignored(temp_audio_file, tmp_path, monkeypatch):
    """An unreadable cache entry should trigger re-analysis."""
    monkeypatch.setattr(ReactivePipeline, "_get_cache_dir", lambda self: tmp_path)

    pipeline = ReactivePipeline()
    cache_path = pipeline._get_cache_path(temp_audio_file)
    cache_path.write_text("{not json")

    with patch.object(pipeline, "load", wraps=pipeline.load) as mock_load:
        snapshot = pipeline.analyze_file(temp_audio_file)
        assert mock_load.called

    assert len(snapshot.transient_timestamps) == 3


def test_clear_cache(tmp_path, monkeypatch):
    """Test that clear_cache removes the cache directory."""
    monkeypatch.setattr(ReactivePipeline, "_get_cache_dir", lambda self: tmp_path)

    (tmp_path / "dummy.json").touch()

    pipeline = ReactivePipeline()
    pipeline.clear_cache()

    # Directory should be empty (recreated but empty)
    assert len(list(tmp_path.glob("*"))) == 0
