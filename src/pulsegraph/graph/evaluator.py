"""
Node graph evaluation.

Interprets a node graph against an analysis snapshot at a playback time
and produces the actions emitted by output nodes.
"""

import heapq
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping

import numpy as np

from pulsegraph.config import EvaluationOrder, EvaluatorConfig
from pulsegraph.core.extractor import AnalysisSnapshot
from pulsegraph.errors import GraphCycleError
from pulsegraph.graph.model import Action, Graph, Node, NodeType

# Values produced during one evaluation, keyed by (node id, handle name)
NodeValues = dict[tuple[str, str], float]

INPUT_TYPES = (
    NodeType.INPUT_BEAT_MARKERS,
    NodeType.INPUT_TRANSIENT_MARKERS,
    NodeType.INPUT_AUDIO_LOUDNESS,
)
LOGIC_TYPES = (
    NodeType.LOGIC_AND,
    NodeType.LOGIC_COUNTER,
    NodeType.LOGIC_MAP_RANGE,
)
OUTPUT_TYPES = (
    NodeType.OUTPUT_CUT_VIDEO,
    NodeType.OUTPUT_SET_EFFECT,
)


def get_node_input_value(
    graph: Graph,
    values: NodeValues,
    node_id: str,
    handle: str,
) -> float | None:
    """
    Resolve the value wired into a node's input handle.

    Only the first edge targeting (node_id, handle) is considered. Returns
    None when no such edge exists, when it has no source handle, or when
    its source has not produced a value.
    """
    for edge in graph.edges:
        if edge.target == node_id and edge.target_handle == handle:
            if edge.source_handle is None:
                return None
            return values.get((edge.source, edge.source_handle))
    return None


@dataclass(frozen=True)
class CounterState:
    """Persisted state of one counter node."""

    count: int = 0
    # Trigger was high on the previous step; a rising edge needs it low first
    trigger_high: bool = False


@dataclass(frozen=True)
class GraphState:
    """
    Caller-owned state carried between evaluation steps.

    Immutable: GraphEvaluator.step returns a new instance.
    """

    counters: Mapping[str, CounterState] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "counters", MappingProxyType(dict(self.counters)))

    def counter(self, node_id: str) -> CounterState:
        return self.counters.get(node_id, CounterState())


@dataclass
class _Evaluation:
    """Working state of a single evaluation call."""

    graph: Graph
    snapshot: AnalysisSnapshot
    time: float
    state: GraphState | None
    values: NodeValues = field(default_factory=dict)
    actions: list[Action] = field(default_factory=list)
    counters: dict[str, CounterState] = field(default_factory=dict)

    def input(self, node: Node, handle: str, default: float) -> float:
        value = get_node_input_value(self.graph, self.values, node.id, handle)
        return default if value is None else value


class GraphEvaluator:
    """
    Evaluates node graphs against analysis snapshots.

    The evaluator holds configuration only. All working values live in a
    per-call map that is discarded when the call returns.
    """

    def __init__(self, config: EvaluatorConfig | None = None):
        """
        Initialize the evaluator.

        Args:
            config: Tolerances, trigger threshold, loudness timing and
                    node ordering.
        """
        self.config = config or EvaluatorConfig()
        self._handlers: dict[NodeType, Callable[[Node, _Evaluation], None]] = {
            NodeType.INPUT_BEAT_MARKERS: self._beat_markers,
            NodeType.INPUT_TRANSIENT_MARKERS: self._transient_markers,
            NodeType.INPUT_AUDIO_LOUDNESS: self._audio_loudness,
            NodeType.LOGIC_AND: self._logic_and,
            NodeType.LOGIC_COUNTER: self._counter,
            NodeType.LOGIC_MAP_RANGE: self._map_range,
            NodeType.OUTPUT_CUT_VIDEO: self._cut_video,
            NodeType.OUTPUT_SET_EFFECT: self._set_effect,
        }

    def evaluate(
        self,
        graph: Graph,
        snapshot: AnalysisSnapshot,
        time: float,
    ) -> list[Action]:
        """
        Evaluate the graph at a playback time.

        Counters are recomputed from the playback time alone, since no
        state survives between calls.

        Raises:
            GraphCycleError: If topological ordering finds a cycle.
        """
        return self._run(graph, snapshot, time, state=None).actions

    def step(
        self,
        graph: Graph,
        snapshot: AnalysisSnapshot,
        time: float,
        state: GraphState | None = None,
    ) -> tuple[list[Action], GraphState]:
        """
        Evaluate the graph and advance persistent node state.

        Counters count rising edges of their trigger across steps.

        Args:
            graph: Graph to evaluate.
            snapshot: Analysis data.
            time: Playback time in seconds.
            state: State returned by the previous step, or None to start fresh.

        Returns:
            Tuple of (actions, new_state). The given state is not modified.
        """
        run = self._run(graph, snapshot, time, state=state or GraphState())
        return run.actions, GraphState(run.counters)

    def values(
        self,
        graph: Graph,
        snapshot: AnalysisSnapshot,
        time: float,
    ) -> NodeValues:
        """Return every (node id, handle) value produced at a playback time."""
        return dict(self._run(graph, snapshot, time, state=None).values)

    def execution_order(self, graph: Graph) -> list[Node]:
        """
        Return nodes in the order they will be evaluated.

        Output nodes always come last, in declaration order, so actions are
        emitted in that order whichever ordering computes the values.
        """
        if self.config.order == EvaluationOrder.PHASED:
            return [
                node
                for phase in (INPUT_TYPES, LOGIC_TYPES, OUTPUT_TYPES)
                for node in graph.nodes
                if node.node_type in phase
            ]
        # Output nodes produce no values, so deferring them keeps every
        # dependency satisfied.
        producers = [
            node for node in self._topological_order(graph)
            if node.node_type not in OUTPUT_TYPES
        ]
        return producers + [n for n in graph.nodes if n.node_type in OUTPUT_TYPES]

    def _topological_order(self, graph: Graph) -> list[Node]:
        """
        Kahn's algorithm over the edges between existing nodes.

        Ready nodes are taken in declaration order. Edges touching missing
        nodes do not constrain the order.
        """
        indices_by_id: dict[str, list[int]] = {}
        for index, node in enumerate(graph.nodes):
            indices_by_id.setdefault(node.id, []).append(index)

        successors: list[set[int]] = [set() for _ in graph.nodes]
        for edge in graph.edges:
            for src in indices_by_id.get(edge.source, ()):
                for dst in indices_by_id.get(edge.target, ()):
                    successors[src].add(dst)

        incoming = [0] * len(graph.nodes)
        for targets in successors:
            for dst in targets:
                incoming[dst] += 1

        ready = [i for i, count in enumerate(incoming) if count == 0]
        heapq.heapify(ready)
        order: list[int] = []
        while ready:
            index = heapq.heappop(ready)
            order.append(index)
            for dst in successors[index]:
                incoming[dst] -= 1
                if incoming[dst] == 0:
                    heapq.heappush(ready, dst)

        if len(order) != len(graph.nodes):
            stuck = [graph.nodes[i].id for i, count in enumerate(incoming) if count > 0]
            raise GraphCycleError(stuck)

        return [graph.nodes[i] for i in order]

    def _run(
        self,
        graph: Graph,
        snapshot: AnalysisSnapshot,
        time: float,
        state: GraphState | None,
    ) -> _Evaluation:
        run = _Evaluation(graph=graph, snapshot=snapshot, time=float(time), state=state)
        for node in self.execution_order(graph):
            node_type = node.node_type
            if node_type is None:
                continue
            self._handlers[node_type](node, run)
        return run

    # Input nodes

    def _beat_markers(self, node: Node, run: _Evaluation) -> None:
        hit = self._near(run.snapshot.beat_timestamps, run.time, self.config.beat_tolerance)
        run.values[(node.id, "beats")] = 1.0 if hit else 0.0

    def _transient_markers(self, node: Node, run: _Evaluation) -> None:
        hit = self._near(
            run.snapshot.transient_timestamps, run.time, self.config.transient_tolerance
        )
        run.values[(node.id, "transients")] = 1.0 if hit else 0.0

    def _audio_loudness(self, node: Node, run: _Evaluation) -> None:
        contour = run.snapshot.loudness_contour
        value = 0.0
        if self.config.loudness_hop_length > 0:
            position = (
                run.time * self.config.loudness_sample_rate / self.config.loudness_hop_length
            )
            # False for inf and nan as well
            if 0 <= position < len(contour):
                value = float(contour[int(position)])
        run.values[(node.id, "loudness")] = value

    @staticmethod
    def _near(timestamps: np.ndarray, time: float, tolerance: float) -> bool:
        timestamps = np.asarray(timestamps, dtype=float)
        return bool(np.any(np.abs(timestamps - time) < tolerance))

    # Logic nodes

    def _logic_and(self, node: Node, run: _Evaluation) -> None:
        threshold = self.config.trigger_threshold
        a = run.input(node, "input-a", 0.0)
        b = run.input(node, "input-b", 0.0)
        run.values[(node.id, "output")] = 1.0 if a > threshold and b > threshold else 0.0

    def _counter(self, node: Node, run: _Evaluation) -> None:
        trigger = run.input(node, "trigger", 0.0)
        max_count = node.parameter("maxCount", 10.0)

        if run.state is None:
            # No memory of earlier triggers: derive a count from time alone
            count = 0.0
            ticks = run.time * trigger
            if max_count > 0 and math.isfinite(ticks):
                count = math.fmod(math.floor(ticks), max_count)
            run.values[(node.id, "count")] = count
            return

        threshold = self.config.trigger_threshold
        previous = run.state.counter(node.id)
        high = trigger > threshold
        count = previous.count
        if run.input(node, "reset", 0.0) > threshold:
            count = 0
        elif high and not previous.trigger_high:
            count += 1

        wrap = int(max_count)
        count = count % wrap if wrap >= 1 else 0

        run.counters[node.id] = CounterState(count=count, trigger_high=high)
        run.values[(node.id, "count")] = float(count)

    def _map_range(self, node: Node, run: _Evaluation) -> None:
        value = run.input(node, "input", 0.0)
        in_min = node.parameter("inputMin", 0.0)
        in_max = node.parameter("inputMax", 1.0)
        out_min = node.parameter("outputMin", 0.0)
        out_max = node.parameter("outputMax", 100.0)

        span = in_max - in_min
        if span == 0:
            mapped = out_min
        else:
            mapped = out_min + (value - in_min) / span * (out_max - out_min)

        if math.isnan(mapped):
            mapped = out_min

        low, high = min(out_min, out_max), max(out_min, out_max)
        run.values[(node.id, "output")] = min(max(mapped, low), high)

    # Output nodes

    def _cut_video(self, node: Node, run: _Evaluation) -> None:
        trigger = run.input(node, "trigger", 0.0)
        if trigger <= self.config.trigger_threshold:
            return
        run.actions.append(
            Action(
                action_type="cut_video",
                target="video_track",
                value=run.input(node, "intensity", 0.5),
                timestamp=run.time,
            )
        )

    def _set_effect(self, node: Node, run: _Evaluation) -> None:
        trigger = run.input(node, "trigger", 0.0)
        if trigger <= self.config.trigger_threshold:
            return
        effect = node.text_parameter("effectName", "glitch")
        parameter = node.text_parameter("parameterName", "intensity")
        run.actions.append(
            Action(
                action_type="set_effect",
                target=f"{effect}.{parameter}",
                value=run.input(node, "value", 0.0),
                timestamp=run.time,
            )
        )
