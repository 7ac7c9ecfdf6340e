"""
Node graph data model.

A graph is an ordered list of typed nodes and an ordered list of edges
that wire a node's output handle to another node's input handle.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeType(str, Enum):
    """Node type tags understood by the evaluator."""

    INPUT_BEAT_MARKERS = "input-beat-markers"
    INPUT_TRANSIENT_MARKERS = "input-transient-markers"
    INPUT_AUDIO_LOUDNESS = "input-audio-loudness"
    LOGIC_AND = "logic-and"
    LOGIC_COUNTER = "logic-counter"
    LOGIC_MAP_RANGE = "logic-map-range"
    OUTPUT_CUT_VIDEO = "output-cut-video"
    OUTPUT_SET_EFFECT = "output-set-effect"

    @classmethod
    def parse(cls, tag: str) -> "NodeType | None":
        """Return the matching NodeType, or None for unknown tags."""
        try:
            return cls(tag)
        except ValueError:
            return None


@dataclass
class Position:
    """Editor canvas position. Display only."""

    x: float = 0.0
    y: float = 0.0


def finite_float(value: Any) -> float | None:
    """
    Convert a JSON number to a finite float.

    Returns None for booleans, non-numbers, nan, infinities and integers
    too large to represent as a float.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


@dataclass
class Node:
    """A typed node in the graph."""

    id: str
    type: str
    position: Position = field(default_factory=Position)
    label: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    # Declared handle names -> type names, for the editor only
    inputs: dict[str, str] | None = None
    outputs: dict[str, str] | None = None

    @property
    def node_type(self) -> NodeType | None:
        return NodeType.parse(self.type)

    def parameter(self, name: str, default: float) -> float:
        """
        Read a numeric parameter.

        Missing, non-numeric and non-finite values fall back to the default.
        """
        value = finite_float(self.parameters.get(name))
        return default if value is None else value

    def text_parameter(self, name: str, default: str) -> str:
        """Read a parameter as text; numbers are rendered compactly."""
        value = self.parameters.get(name)
        if isinstance(value, str):
            return value
        number = finite_float(value)
        return default if number is None else _format_number(number)


@dataclass
class Edge:
    """Connection from a source handle to a target handle."""

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None


@dataclass
class Graph:
    """
    Ordered nodes and edges.

    Ids are not validated: edges may point at missing nodes or handles,
    which simply resolve to no value during evaluation.
    """

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def get_node(self, node_id: str) -> Node | None:
        """Return the first node with the given id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def add_node(self, node: Node) -> Node:
        self.nodes.append(node)
        return node

    def remove_node(self, node_id: str) -> None:
        """Remove a node together with every edge that touches it."""
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [
            e for e in self.edges
            if e.source != node_id and e.target != node_id
        ]

    def connect(
        self,
        source: str,
        source_handle: str,
        target: str,
        target_handle: str,
        edge_id: str | None = None,
    ) -> Edge:
        """Add an edge between two handles."""
        edge = Edge(
            id=edge_id or f"{source}-{source_handle}-{target}-{target_handle}",
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        return self.add_edge(edge)

    def add_edge(self, edge: Edge) -> Edge:
        self.edges.append(edge)
        return edge

    def remove_edge(self, edge_id: str) -> None:
        self.edges = [e for e in self.edges if e.id != edge_id]


@dataclass(frozen=True)
class Action:
    """A timestamped instruction for the downstream effect system."""

    action_type: str
    target: str
    value: float
    timestamp: float
