"""Error taxonomy for graph operations.

``NotFound`` and ``PathNotFound`` are expected, caller-triggered outcomes.
``StoreError`` means the underlying store failed and the caller should
treat it as an infrastructure problem.
"""

from __future__ import annotations

from typing import Any


class GraphError(Exception):
    """Base class for every error raised by the graph layer."""

    def __init__(self, message: str, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class NotFound(GraphError):
    """A referenced node id does not exist (or has the wrong kind)."""

    def __init__(self, kind: str, node_id: int, operation: str = "") -> None:
        super().__init__(f"{kind} {node_id} not found", operation)
        self.kind = kind
        self.node_id = node_id


class PathNotFound(NotFound):
    """No edge sequence connects the two endpoints."""

    def __init__(self, from_id: int, to_id: int, reason: str = "") -> None:
        GraphError.__init__(
            self,
            f"no path from {from_id} to {to_id}" + (f": {reason}" if reason else ""),
            "shortest_path",
        )
        self.kind = "Path"
        self.node_id = to_id
        self.from_id = from_id
        self.to_id = to_id


class ValidationError(GraphError):
    """Creation input was malformed."""

    def __init__(
        self,
        message: str,
        operation: str = "",
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message, operation)
        self.errors = errors or []


class StoreError(GraphError):
    """The graph store failed for infrastructural reasons."""


class PartialWriteError(StoreError):
    """A node was created but linking it afterwards failed.

    ``node_id`` is valid but the node may be missing derived edges.
    """

    def __init__(self, node_id: int, message: str, operation: str = "") -> None:
        super().__init__(message, operation)
        self.node_id = node_id
