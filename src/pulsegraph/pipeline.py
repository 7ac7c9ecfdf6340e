"""
Main audio-to-actions pipeline.

Orchestrates the flow from audio file to analysis snapshot to a
frame-aligned action timeline.
"""

import dataclasses
import hashlib
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Union

import numpy as np

from pulsegraph.config import AnalysisConfig, EvaluatorConfig
from pulsegraph.core.extractor import AnalysisSnapshot, FeatureExtractor
from pulsegraph.core.loader import AudioLoader, LoadedAudio
from pulsegraph.graph.evaluator import GraphEvaluator
from pulsegraph.graph.model import Graph
from pulsegraph.io.exporter import ActionTimelineExporter
from pulsegraph.io.serialization import snapshot_from_dict, snapshot_to_dict

logger = logging.getLogger(__name__)


class ReactivePipeline:
    """
    Complete audio-to-timeline processing pipeline.

    Combines loading, feature extraction, graph evaluation and export
    into a single interface. Snapshots are cached per file and config.
    """

    # Version of the analysis logic/schema.
    # Increment this whenever feature extraction changes so that cached
    # snapshots are invalidated and re-generated.
    ANALYSIS_VERSION = "1.0"

    def __init__(
        self,
        sample_rate: int | None = 44100,
        fps: int = 60,
        analysis_config: AnalysisConfig | None = None,
        evaluator_config: EvaluatorConfig | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            sample_rate: Analysis sample rate. None keeps the file's rate.
            fps: Frame rate of the action timeline.
            analysis_config: Feature extraction parameters.
            evaluator_config: Graph evaluation parameters.
        """
        self.sample_rate = sample_rate
        self.fps = fps or 60
        self.analysis_config = analysis_config or AnalysisConfig()
        self.evaluator_config = evaluator_config or EvaluatorConfig()

        self.loader = AudioLoader(sample_rate=sample_rate)
        self.extractor = FeatureExtractor(self.analysis_config)
        self.exporter = ActionTimelineExporter()

    def _get_cache_dir(self) -> Path:
        """Return the directory for caching snapshots."""
        cache_dir = Path.home() / ".cache" / "pulsegraph" / "snapshots"
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cache_dir

    def _calculate_file_hash(self, file_path: Path) -> str:
        """Calculate SHA256 hash of the file."""
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def _get_config_hash(self) -> str:
        """Calculate hash of the analysis configuration."""
        config = {
            "version": self.ANALYSIS_VERSION,
            "sr": self.sample_rate,
            "analysis": dataclasses.asdict(self.analysis_config),
        }
        return hashlib.md5(json.dumps(config, sort_keys=True).encode("utf-8")).hexdigest()

    def _get_cache_path(self, audio_path: Path) -> Path:
        """Get the cache file path for a given audio file."""
        file_hash = self._calculate_file_hash(audio_path)
        config_hash = self._get_config_hash()
        return self._get_cache_dir() / f"snapshot_{file_hash}_{config_hash}.json"

    def clear_cache(self):
        """Clear the snapshot cache."""
        cache_dir = self._get_cache_dir()
        if cache_dir.exists():
            shutil.rmtree(cache_dir)
            cache_dir.mkdir(parents=True, exist_ok=True)

    def load(self, audio_path: Union[str, Path]) -> LoadedAudio:
        """Load an audio file as mono samples."""
        return self.loader.load(audio_path)

    def analyze(self, samples: np.ndarray, sr: int) -> AnalysisSnapshot:
        """Extract features from a sample buffer."""
        return self.extractor.extract(samples, sr)

    def analyze_file(
        self,
        audio_path: Union[str, Path],
        use_cache: bool = True,
    ) -> AnalysisSnapshot:
        """
        Load and analyze an audio file, reusing a cached snapshot if present.

        Args:
            audio_path: Path to input audio file.
            use_cache: Whether to read and write the snapshot cache.

        Returns:
            AnalysisSnapshot for the whole file.
        """
        audio_path = Path(audio_path)

        if use_cache:
            try:
                cache_path = self._get_cache_path(audio_path)
                if cache_path.exists():
                    with open(cache_path, "r", encoding="utf-8") as f:
                        snapshot = snapshot_from_dict(json.load(f))
                    logger.info("Loaded analysis from cache: %s", cache_path)
                    return snapshot
            except Exception as e:
                logger.warning("Failed to load cache: %s. Re-analyzing.", e)

        loaded = self.load(audio_path)
        snapshot = self.analyze(loaded.samples, loaded.sample_rate)

        if use_cache:
            try:
                cache_path = self._get_cache_path(audio_path)
                with open(cache_path, "w", encoding="utf-8") as f:
                    json.dump(snapshot_to_dict(snapshot), f)
            except OSError as e:
                logger.warning("Failed to save cache: %s", e)

        return snapshot

    def evaluator_for(self, snapshot: AnalysisSnapshot) -> GraphEvaluator:
        """
        Build an evaluator whose loudness lookup matches the snapshot.

        Snapshots that record their own timing index the loudness contour
        with it; others use the configured constants.
        """
        config = self.evaluator_config
        if snapshot.sample_rate > 0 and snapshot.loudness_hop_length > 0:
            config = dataclasses.replace(
                config,
                loudness_sample_rate=snapshot.sample_rate,
                loudness_hop_length=snapshot.loudness_hop_length,
            )
        return GraphEvaluator(config)

    def process(
        self,
        audio_path: Union[str, Path],
        graph: Graph,
        output_path: Union[str, Path] | None = None,
        use_cache: bool = True,
    ) -> dict[str, Any]:
        """
        Run the complete pipeline from audio file to action timeline.

        Args:
            audio_path: Path to input audio file.
            graph: Node graph to evaluate.
            output_path: Path for the timeline JSON. If None, only returns dict.
            use_cache: Whether to use a cached snapshot if available.

        Returns:
            Dictionary containing the snapshot, timeline and processing info.
        """
        snapshot = self.analyze_file(audio_path, use_cache=use_cache)
        timeline = self.exporter.build_timeline(
            graph,
            snapshot,
            duration=snapshot.duration,
            fps=self.fps,
            evaluator=self.evaluator_for(snapshot),
        )

        result = {
            "snapshot": snapshot,
            "timeline": timeline,
            "tempo": snapshot.tempo_estimate,
            "duration": snapshot.duration,
            "n_frames": timeline["metadata"]["n_frames"],
            "n_actions": timeline["metadata"]["n_actions"],
            "fps": self.fps,
        }

        if output_path:
            written_path = self.exporter.export_json(timeline, output_path)
            result["output_path"] = str(written_path)

        return result
