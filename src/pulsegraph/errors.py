"""Exception hierarchy for pulsegraph."""


class PulseGraphError(Exception):
    """Base class for all pulsegraph errors."""


class GraphFormatError(PulseGraphError):
    """Raised when a serialized node graph is structurally malformed."""


class SnapshotFormatError(PulseGraphError):
    """Raised when a serialized analysis snapshot is structurally malformed."""


class GraphValidationError(PulseGraphError):
    """Raised when a well-formed graph cannot be evaluated."""


class GraphCycleError(GraphValidationError):
    """Raised when the edges of a graph form a dependency cycle."""

    def __init__(self, node_ids: list[str]):
        self.node_ids = list(node_ids)
        super().__init__(
            "Graph contains a dependency cycle; unresolved nodes: "
            + ", ".join(self.node_ids)
        )


class AudioLoadError(PulseGraphError):
    """Raised when an audio file cannot be loaded or is invalid."""
