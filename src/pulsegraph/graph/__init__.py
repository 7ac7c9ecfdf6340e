"""Node graph model and evaluation."""

from pulsegraph.graph.evaluator import (
    CounterState,
    GraphEvaluator,
    GraphState,
    get_node_input_value,
)
from pulsegraph.graph.model import Action, Edge, Graph, Node, NodeType, Position
from pulsegraph.graph.templates import NODE_TEMPLATES, create_node

__all__ = [
    "Action",
    "CounterState",
    "Edge",
    "Graph",
    "GraphEvaluator",
    "GraphState",
    "NODE_TEMPLATES",
    "Node",
    "NodeType",
    "Position",
    "create_node",
    "get_node_input_value",
]
