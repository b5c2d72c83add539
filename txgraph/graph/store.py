"""Graph Store contract and the in-memory backend.

The analytics layer only ever talks to a ``GraphStore``. Two backends
implement it: ``InMemoryGraphStore`` (a NetworkX ``MultiDiGraph`` behind
a lock) and ``Neo4jGraphStore`` in :mod:`txgraph.graph.neo4j_store`.

Enumeration contract shared by all backends:
  - ``list_nodes`` returns nodes by ascending id
  - ``list_edges`` returns edges in creation order
  - SHARED_* edges are stored with the lower id as source
"""

from __future__ import annotations

import abc
import itertools
import logging
import threading
from typing import Any, Iterable, Sequence

import networkx as nx

from txgraph.graph.errors import NotFound
from txgraph.graph.models import Edge, GraphNode, Link, NodeKind, RelType

logger = logging.getLogger(__name__)


class GraphStore(abc.ABC):
    """Minimal property-graph contract required by the analytics layer."""

    @abc.abstractmethod
    def get_node(self, node_id: int) -> GraphNode:
        """Return the node with ``node_id`` or raise ``NotFound``."""

    @abc.abstractmethod
    def list_nodes(self, kind: NodeKind | None = None) -> list[GraphNode]:
        """All nodes, optionally restricted to one kind."""

    @abc.abstractmethod
    def list_edges(
        self,
        from_id: int | None = None,
        to_id: int | None = None,
        types: Iterable[RelType] | None = None,
    ) -> list[Edge]:
        """All edges matching the given endpoint and type filters."""

    @abc.abstractmethod
    def create_node(
        self,
        kind: NodeKind,
        properties: dict[str, Any],
        links: Sequence[Link] = (),
    ) -> int:
        """Create a node plus its mandatory ``links`` as one atomic unit.

        Raises ``NotFound`` (and writes nothing) if a link peer is missing.
        """

    @abc.abstractmethod
    def create_edge(self, rel_type: RelType, source_id: int, target_id: int) -> bool:
        """Create an edge. Returns False if it already existed."""

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self) -> "GraphStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class InMemoryGraphStore(GraphStore):
    """Thread-safe in-process store on top of ``networkx.MultiDiGraph``.

    Edges are keyed by relationship type, so a second edge of the same
    type between the same endpoints is a no-op.
    """

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()
        self._lock = threading.RLock()
        self._next_id = 0
        self._edge_seq = itertools.count(0)

    @property
    def graph(self) -> nx.MultiDiGraph:
        return self._graph

    def get_node(self, node_id: int) -> GraphNode:
        with self._lock:
            if node_id not in self._graph:
                raise NotFound("Node", node_id, "get_node")
            return self._to_node(node_id, self._graph.nodes[node_id])

    def list_nodes(self, kind: NodeKind | None = None) -> list[GraphNode]:
        with self._lock:
            return [
                self._to_node(node_id, data)
                for node_id, data in sorted(self._graph.nodes(data=True))
                if kind is None or data["kind"] == kind
            ]

    def list_edges(
        self,
        from_id: int | None = None,
        to_id: int | None = None,
        types: Iterable[RelType] | None = None,
    ) -> list[Edge]:
        wanted = set(types) if types is not None else None
        with self._lock:
            if from_id is not None:
                if from_id not in self._graph:
                    return []
                candidates = self._graph.out_edges(from_id, keys=True, data="seq")
            elif to_id is not None:
                if to_id not in self._graph:
                    return []
                candidates = self._graph.in_edges(to_id, keys=True, data="seq")
            else:
                candidates = self._graph.edges(keys=True, data="seq")

            matches = []
            for u, v, key, seq in candidates:
                rel_type = RelType(key)
                if to_id is not None and v != to_id:
                    continue
                if wanted is not None and rel_type not in wanted:
                    continue
                matches.append((seq, Edge(rel_type, u, v)))

        matches.sort(key=lambda item: item[0])
        return [edge for _, edge in matches]

    def create_node(
        self,
        kind: NodeKind,
        properties: dict[str, Any],
        links: Sequence[Link] = (),
    ) -> int:
        kind = NodeKind(kind)
        with self._lock:
            for link in links:
                if link.peer_id not in self._graph:
                    raise NotFound("Node", link.peer_id, "create_node")

            node_id = self._next_id
            self._next_id += 1
            self._graph.add_node(node_id, kind=kind, properties=dict(properties))
            for link in links:
                if link.outgoing:
                    self._add_edge(link.rel_type, node_id, link.peer_id)
                else:
                    self._add_edge(link.rel_type, link.peer_id, node_id)

        logger.debug("Created %s node %d with %d links", kind.value, node_id, len(links))
        return node_id

    def create_edge(self, rel_type: RelType, source_id: int, target_id: int) -> bool:
        edge = Edge.canonical(RelType(rel_type), source_id, target_id)
        with self._lock:
            for node_id in (edge.source_id, edge.target_id):
                if node_id not in self._graph:
                    raise NotFound("Node", node_id, "create_edge")
            return self._add_edge(edge.rel_type, edge.source_id, edge.target_id)

    def restore_node(self, node_id: int, kind: NodeKind, properties: dict[str, Any]) -> bool:
        """Insert a node with a known id (snapshot loading).

        Returns False if the id is already taken. Later ``create_node``
        calls allocate ids above every restored id.
        """
        with self._lock:
            if node_id in self._graph:
                return False
            self._graph.add_node(node_id, kind=NodeKind(kind), properties=dict(properties))
            self._next_id = max(self._next_id, node_id + 1)
            return True

    # -- Helpers -------------------------------------------------------------

    def _add_edge(self, rel_type: RelType, source_id: int, target_id: int) -> bool:
        if self._graph.has_edge(source_id, target_id, key=rel_type.value):
            return False
        self._graph.add_edge(source_id, target_id, key=rel_type.value, seq=next(self._edge_seq))
        return True

    @staticmethod
    def _to_node(node_id: int, data: dict[str, Any]) -> GraphNode:
        return GraphNode(id=node_id, kind=data["kind"], properties=dict(data["properties"]))
