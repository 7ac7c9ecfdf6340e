"""
JSON serialization for graphs, snapshots and actions.

Also hosts the two string-in/string-out entry points used at the system
edge: feature extraction and graph evaluation.
"""

import json
import logging
import math
from dataclasses import asdict
from typing import Any, Iterable

import numpy as np

from pulsegraph.config import AnalysisConfig
from pulsegraph.core.extractor import AnalysisSnapshot, FeatureExtractor
from pulsegraph.errors import GraphFormatError, SnapshotFormatError
from pulsegraph.graph.evaluator import GraphEvaluator
from pulsegraph.graph.model import Action, Edge, Graph, Node, Position, finite_float

logger = logging.getLogger(__name__)


def _require_str(record: dict, key: str, where: str) -> str:
    value = record.get(key)
    if not isinstance(value, str):
        raise GraphFormatError(f"{where}: '{key}' must be a string, got {value!r}")
    return value


def _optional_str(record: dict, keys: tuple[str, ...], where: str) -> str | None:
    for key in keys:
        if key in record:
            value = record[key]
            if value is not None and not isinstance(value, str):
                raise GraphFormatError(f"{where}: '{key}' must be a string or null")
            return value
    return None


def _optional_name_map(data: dict, key: str, where: str) -> dict[str, str] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise GraphFormatError(f"{where}: '{key}' must be an object")
    return {str(k): str(v) for k, v in value.items()}


def _number(value: Any, where: str) -> float:
    number = finite_float(value)
    if number is None:
        raise GraphFormatError(f"{where}: expected a finite number")
    return number


def _node_from_dict(record: Any, index: int) -> Node:
    where = f"nodes[{index}]"
    if not isinstance(record, dict):
        raise GraphFormatError(f"{where}: expected an object")

    node_id = _require_str(record, "id", where)
    type_key = "type" if "type" in record else "node_type"
    node_type = _require_str(record, type_key, where)

    position = record.get("position") or {}
    if not isinstance(position, dict):
        raise GraphFormatError(f"{where}: 'position' must be an object")

    data = record.get("data") or {}
    if not isinstance(data, dict):
        raise GraphFormatError(f"{where}: 'data' must be an object")

    parameters = data.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise GraphFormatError(f"{where}: 'parameters' must be an object")

    return Node(
        id=node_id,
        type=node_type,
        position=Position(
            x=_number(position.get("x", 0.0), f"{where}.position.x"),
            y=_number(position.get("y", 0.0), f"{where}.position.y"),
        ),
        label=str(data.get("label", "")),
        # Values are kept as given; the evaluator falls back to defaults
        # for anything it cannot use.
        parameters=dict(parameters),
        inputs=_optional_name_map(data, "inputs", where),
        outputs=_optional_name_map(data, "outputs", where),
    )


def _edge_from_dict(record: Any, index: int) -> Edge:
    where = f"edges[{index}]"
    if not isinstance(record, dict):
        raise GraphFormatError(f"{where}: expected an object")

    return Edge(
        id=_require_str(record, "id", where),
        source=_require_str(record, "source", where),
        target=_require_str(record, "target", where),
        source_handle=_optional_str(record, ("sourceHandle", "source_handle"), where),
        target_handle=_optional_str(record, ("targetHandle", "target_handle"), where),
    )


def graph_from_dict(data: Any) -> Graph:
    """
    Build a Graph from its decoded JSON form.

    Accepts both editor keys (type, sourceHandle) and snake_case keys
    (node_type, source_handle).

    Raises:
        GraphFormatError: If the structure is malformed.
    """
    if not isinstance(data, dict):
        raise GraphFormatError("Graph must be an object")

    nodes = data.get("nodes", [])
    edges = data.get("edges", [])
    if not isinstance(nodes, list):
        raise GraphFormatError("'nodes' must be a list")
    if not isinstance(edges, list):
        raise GraphFormatError("'edges' must be a list")

    return Graph(
        nodes=[_node_from_dict(n, i) for i, n in enumerate(nodes)],
        edges=[_edge_from_dict(e, i) for i, e in enumerate(edges)],
    )


def graph_to_dict(graph: Graph) -> dict[str, Any]:
    """Encode a Graph in editor form."""
    nodes = []
    for node in graph.nodes:
        data: dict[str, Any] = {"label": node.label}
        if node.inputs is not None:
            data["inputs"] = dict(node.inputs)
        if node.outputs is not None:
            data["outputs"] = dict(node.outputs)
        if node.parameters:
            data["parameters"] = dict(node.parameters)
        nodes.append({
            "id": node.id,
            "type": node.type,
            "position": {"x": node.position.x, "y": node.position.y},
            "data": data,
        })

    edges = [
        {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
            "sourceHandle": edge.source_handle,
            "targetHandle": edge.target_handle,
        }
        for edge in graph.edges
    ]
    return {"nodes": nodes, "edges": edges}


def graph_from_json(text: str) -> Graph:
    """Parse a JSON-encoded graph."""
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise GraphFormatError(f"Invalid graph JSON: {e}") from e
    return graph_from_dict(data)


def _float_array(data: dict, key: str, required: bool) -> np.ndarray:
    if key not in data:
        if required:
            raise SnapshotFormatError(f"Missing '{key}'")
        return np.array([], dtype=float)

    values = data[key]
    if not isinstance(values, list):
        raise SnapshotFormatError(f"'{key}' must be a list of numbers")
    numbers = [finite_float(v) for v in values]
    if None in numbers:
        raise SnapshotFormatError(f"'{key}' must contain only finite numbers")
    return np.asarray(numbers, dtype=float)


def _float_field(data: dict, key: str, default: float) -> float:
    value = data.get(key, default)
    number = finite_float(value)
    if number is None:
        raise SnapshotFormatError(f"'{key}' must be a finite number")
    return number


def snapshot_from_dict(data: Any) -> AnalysisSnapshot:
    """
    Build an AnalysisSnapshot from its decoded JSON form.

    Beat, transient and loudness sequences are required; everything else
    is optional.

    Raises:
        SnapshotFormatError: If the structure is malformed.
    """
    if not isinstance(data, dict):
        raise SnapshotFormatError("Snapshot must be an object")

    return AnalysisSnapshot(
        beat_timestamps=_float_array(data, "beat_timestamps", required=True),
        transient_timestamps=_float_array(data, "transient_timestamps", required=True),
        loudness_contour=_float_array(data, "loudness_contour", required=True),
        frequency_bands=_float_array(data, "frequency_bands", required=False),
        tempo_estimate=_float_field(data, "tempo_estimate", 0.0),
        current_time=_float_field(data, "current_time", 0.0),
        sample_rate=int(_float_field(data, "sample_rate", 0)),
        loudness_hop_length=int(_float_field(data, "loudness_hop_length", 0)),
    )


def snapshot_to_dict(snapshot: AnalysisSnapshot) -> dict[str, Any]:
    """Encode an AnalysisSnapshot as plain JSON-compatible values."""
    return {
        "beat_timestamps": np.asarray(snapshot.beat_timestamps, dtype=float).tolist(),
        "transient_timestamps": np.asarray(snapshot.transient_timestamps, dtype=float).tolist(),
        "loudness_contour": np.asarray(snapshot.loudness_contour, dtype=float).tolist(),
        "frequency_bands": np.asarray(snapshot.frequency_bands, dtype=float).tolist(),
        "tempo_estimate": float(snapshot.tempo_estimate),
        "current_time": float(snapshot.current_time),
        "sample_rate": int(snapshot.sample_rate),
        "loudness_hop_length": int(snapshot.loudness_hop_length),
    }


def snapshot_from_json(text: str) -> AnalysisSnapshot:
    """Parse a JSON-encoded snapshot."""
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise SnapshotFormatError(f"Invalid snapshot JSON: {e}") from e
    return snapshot_from_dict(data)


def actions_to_list(actions: Iterable[Action]) -> list[dict[str, Any]]:
    return [asdict(action) for action in actions]


def actions_to_json(actions: Iterable[Action]) -> str:
    # nan and infinities have no JSON representation
    return json.dumps(actions_to_list(actions), allow_nan=False)


def extract_features_json(
    samples,
    sample_rate: int,
    config: AnalysisConfig | None = None,
) -> str:
    """Run feature extraction and return the snapshot as JSON."""
    snapshot = FeatureExtractor(config).extract(samples, sample_rate)
    return json.dumps(snapshot_to_dict(snapshot))


def evaluate_graph(
    graph_json: str,
    snapshot_json: str,
    playback_time: float,
    evaluator: GraphEvaluator | None = None,
) -> str:
    """
    Evaluate a serialized graph against a serialized snapshot.

    Never raises: any parse, structural or validation failure is logged and
    an empty action list ("[]") is returned.
    """
    try:
        time = float(playback_time)
        if not math.isfinite(time):
            raise ValueError(f"playback time must be finite, got {playback_time!r}")
        graph = graph_from_json(graph_json)
        snapshot = snapshot_from_json(snapshot_json)
        actions = (evaluator or GraphEvaluator()).evaluate(graph, snapshot, time)
        return actions_to_json(actions)
    except Exception as e:
        logger.error("Node graph execution error: %s", e)
        return "[]"
