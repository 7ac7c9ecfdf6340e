"""
Action timeline export.

Steps a node graph across a frame grid and writes the resulting actions
as a JSON timeline for effect renderers.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from pulsegraph.core.extractor import AnalysisSnapshot
from pulsegraph.graph.evaluator import GraphEvaluator, GraphState
from pulsegraph.graph.model import Action, Graph


@dataclass
class TimelineMetadata:
    """Metadata header for the action timeline."""

    duration: float
    fps: int
    n_frames: int
    tempo: float
    n_actions: int
    schema_version: str = "1.0"


class ActionTimelineExporter:
    """
    Exports frame-aligned action timelines.

    Node state is carried from frame to frame, so counter nodes count
    trigger edges across the whole timeline.
    """

    def __init__(self, precision: int = 4):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
        """
        self.precision = precision

    def _round(self, value: float) -> float:
        """Round to configured precision."""
        return round(float(value), self.precision)

    def _action_dict(self, action: Action) -> dict[str, Any]:
        return {
            "action_type": action.action_type,
            "target": action.target,
            "value": self._round(action.value),
            "timestamp": self._round(action.timestamp),
        }

    def build_timeline(
        self,
        graph: Graph,
        snapshot: AnalysisSnapshot,
        duration: float,
        fps: int = 60,
        evaluator: GraphEvaluator | None = None,
    ) -> dict[str, Any]:
        """
        Evaluate the graph at every frame time.

        Args:
            graph: Graph to evaluate.
            snapshot: Analysis data for the whole track.
            duration: Length of the timeline in seconds.
            fps: Frames per second.
            evaluator: Evaluator to use (default configuration if None).

        Returns:
            Timeline dictionary ready for serialization.
        """
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        evaluator = evaluator or GraphEvaluator()

        n_frames = max(0, int(duration * fps))
        state = GraphState()
        frames = []
        n_actions = 0

        for index in range(n_frames):
            time = index / fps
            actions, state = evaluator.step(graph, snapshot, time, state)
            n_actions += len(actions)
            frames.append({
                "frame_index": index,
                "time": self._round(time),
                "actions": [self._action_dict(a) for a in actions],
            })

        metadata = TimelineMetadata(
            duration=self._round(duration),
            fps=fps,
            n_frames=n_frames,
            tempo=self._round(snapshot.tempo_estimate),
            n_actions=n_actions,
        )

        return {
            "metadata": {
                "duration": metadata.duration,
                "fps": metadata.fps,
                "n_frames": metadata.n_frames,
                "tempo": metadata.tempo,
                "n_actions": metadata.n_actions,
                "schema_version": metadata.schema_version,
            },
            "frames": frames,
        }

    def export_json(
        self,
        timeline: dict[str, Any],
        output_path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        """
        Write a timeline to a JSON file.

        Returns:
            Path to written file.
        """
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(timeline, f, indent=indent)

        return output_path
