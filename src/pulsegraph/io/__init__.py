"""Serialization and export."""

from pulsegraph.io.exporter import ActionTimelineExporter
from pulsegraph.io.serialization import (
    actions_to_json,
    evaluate_graph,
    extract_features_json,
    graph_from_dict,
    graph_from_json,
    graph_to_dict,
    snapshot_from_dict,
    snapshot_from_json,
    snapshot_to_dict,
)

__all__ = [
    "ActionTimelineExporter",
    "actions_to_json",
    "evaluate_graph",
    "extract_features_json",
    "graph_from_dict",
    "graph_from_json",
    "graph_to_dict",
    "snapshot_from_dict",
    "snapshot_from_json",
    "snapshot_to_dict",
]
