"""Audio feature extraction and node-graph evaluation for reactive effects."""

from pulsegraph.config import AnalysisConfig, EvaluationOrder, EvaluatorConfig
from pulsegraph.core.extractor import AnalysisSnapshot, FeatureExtractor, extract_features
from pulsegraph.graph.evaluator import GraphEvaluator, GraphState
from pulsegraph.graph.model import Action, Edge, Graph, Node, NodeType
from pulsegraph.io.serialization import evaluate_graph, extract_features_json
from pulsegraph.pipeline import ReactivePipeline

__version__ = "0.1.0"
__all__ = [
    "Action",
    "AnalysisConfig",
    "AnalysisSnapshot",
    "Edge",
    "EvaluationOrder",
    "EvaluatorConfig",
    "FeatureExtractor",
    "Graph",
    "GraphEvaluator",
    "GraphState",
    "Node",
    "NodeType",
    "ReactivePipeline",
    "evaluate_graph",
    "extract_features",
    "extract_features_json",
]
