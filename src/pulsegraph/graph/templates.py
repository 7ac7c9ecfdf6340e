"""
Node palette templates.

Each template lists the label, the handles the evaluator reads and writes,
and default parameters for one node type.
"""

from typing import Any

from pulsegraph.graph.model import Node, NodeType, Position

NODE_TEMPLATES: dict[NodeType, dict[str, Any]] = {
    NodeType.INPUT_BEAT_MARKERS: {
        "label": "Beat Markers",
        "outputs": {"beats": "boolean"},
    },
    NodeType.INPUT_TRANSIENT_MARKERS: {
        "label": "Transient Markers",
        "outputs": {"transients": "boolean"},
    },
    NodeType.INPUT_AUDIO_LOUDNESS: {
        "label": "Audio Loudness",
        "outputs": {"loudness": "number"},
    },
    NodeType.LOGIC_AND: {
        "label": "AND Gate",
        "inputs": {"input-a": "boolean", "input-b": "boolean"},
        "outputs": {"output": "boolean"},
    },
    NodeType.LOGIC_COUNTER: {
        "label": "Counter",
        "inputs": {"trigger": "boolean", "reset": "boolean"},
        "outputs": {"count": "number"},
        "parameters": {"maxCount": 10.0},
    },
    NodeType.LOGIC_MAP_RANGE: {
        "label": "Map Range",
        "inputs": {"input": "number"},
        "outputs": {"output": "number"},
        "parameters": {
            "inputMin": 0.0,
            "inputMax": 1.0,
            "outputMin": 0.0,
            "outputMax": 100.0,
        },
    },
    NodeType.OUTPUT_CUT_VIDEO: {
        "label": "Cut Video",
        "inputs": {"trigger": "boolean", "intensity": "number"},
    },
    NodeType.OUTPUT_SET_EFFECT: {
        "label": "Set Effect",
        "inputs": {"trigger": "boolean", "value": "number"},
        "parameters": {"effectName": "glitch", "parameterName": "intensity"},
    },
}


def create_node(
    node_type: NodeType | str,
    node_id: str,
    x: float = 0.0,
    y: float = 0.0,
    **parameters: Any,
) -> Node:
    """
    Build a node from its palette template.

    Keyword arguments override the template's default parameters.
    """
    node_type = NodeType(node_type)
    template = NODE_TEMPLATES[node_type]

    params = dict(template.get("parameters", {}))
    params.update(parameters)

    inputs = template.get("inputs")
    outputs = template.get("outputs")

    return Node(
        id=node_id,
        type=node_type.value,
        position=Position(x, y),
        label=template["label"],
        parameters=params,
        inputs=dict(inputs) if inputs else None,
        outputs=dict(outputs) if outputs else None,
    )
