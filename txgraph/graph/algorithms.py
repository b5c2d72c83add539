"""Graph algorithms over the user/transaction network.

Both analyses build a NetworkX graph per call from the store's edge
listing and then run a standard algorithm on it:

  - shortest path: breadth-first search over every edge type, ignoring
    stored direction
  - transaction clusters: connected components of the transaction graph
    projected through shared senders/receivers

Neighbour discovery order is fixed by sorting edges on (relationship
type, source id, target id), so equal-length paths always resolve the
same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import networkx as nx
from networkx.algorithms import bipartite

from txgraph.graph.errors import PathNotFound
from txgraph.graph.models import STRUCTURAL_TYPES, NodeKind, RelType
from txgraph.graph.store import GraphStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class PathNode:
    """Endpoint summary carried on each hop."""
    id: int
    type: str
    name: str = ""
    device_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "type": self.type}
        if self.name:
            data["name"] = self.name
        if self.device_id:
            data["deviceId"] = self.device_id
        return data


@dataclass
class Hop:
    """One edge traversal along a path."""
    from_node: PathNode
    to_node: PathNode
    relationship: str


@dataclass
class PathResult:
    """Shortest path between two nodes, in order from source to target."""
    source_id: int
    target_id: int
    path_length: int
    hops: list[Hop]
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "segments": [
                {
                    "from": hop.from_node.to_dict(),
                    "to": hop.to_node.to_dict(),
                    "relationship": hop.relationship,
                }
                for hop in self.hops
            ],
        }


@dataclass
class TransactionCluster:
    """Cluster assignment for one transaction."""
    transaction_id: int
    cluster_id: int


@dataclass
class ClusterResult:
    """A group of transactions joined through shared users."""
    cluster_id: int
    member_count: int
    transaction_ids: list[int]
    user_ids: list[int] = field(default_factory=list)
    explanation: str = ""


# ---------------------------------------------------------------------------
# Analysis engine
# ---------------------------------------------------------------------------


class GraphAnalysis:
    """Shortest paths and transaction clustering over a ``GraphStore``."""

    def __init__(self, store: GraphStore) -> None:
        self._store = store

    # -- Shortest path -------------------------------------------------------

    def shortest_path(self, from_id: int, to_id: int) -> PathResult:
        """Fewest-hop path between any two nodes.

        Every relationship is traversable in both directions. A node is
        not considered connected to itself, so ``from_id == to_id``
        raises ``PathNotFound``.
        """
        graph = self.connectivity_graph()

        for endpoint in (from_id, to_id):
            if endpoint not in graph:
                raise PathNotFound(from_id, to_id, f"node {endpoint} does not exist")
        if from_id == to_id:
            raise PathNotFound(from_id, to_id, "source and target are the same node")

        parents: dict[int, int | None] = {from_id: None}
        for parent, child in nx.bfs_edges(graph, from_id):
            parents[child] = parent
            if child == to_id:
                break
        else:
            raise PathNotFound(from_id, to_id, "nodes are not connected")

        path = [to_id]
        while parents[path[-1]] is not None:
            path.append(parents[path[-1]])
        path.reverse()

        hops = [
            Hop(
                from_node=self._path_node(graph, u),
                to_node=self._path_node(graph, v),
                # first edge between u and v in enumeration order
                relationship=next(iter(graph[u][v])),
            )
            for u, v in zip(path, path[1:])
        ]

        source_label = self._label(graph, from_id)
        target_label = self._label(graph, to_id)
        intermediaries = [self._label(graph, n) for n in path[1:-1]]
        explanation = (
            f"Connection from {source_label} to {target_label} in {len(hops)} hop(s)"
        )
        if intermediaries:
            explanation += f" through {' → '.join(intermediaries)}"
        explanation += "."

        logger.info("Path %d -> %d found: %d hops", from_id, to_id, len(hops))
        return PathResult(
            source_id=from_id,
            target_id=to_id,
            path_length=len(hops),
            hops=hops,
            explanation=explanation,
        )

    def connectivity_graph(self) -> nx.MultiGraph:
        """Undirected multigraph of every node and stored edge.

        Edges are keyed by relationship type and inserted in enumeration
        order, which fixes BFS neighbour order.
        """
        graph = nx.MultiGraph()
        for node in self._store.list_nodes():
            graph.add_node(
                node.id,
                kind=node.kind,
                name=node.get("name") if node.kind == NodeKind.USER else "",
                device_id=node.get("deviceId") if node.kind == NodeKind.TRANSACTION else "",
            )

        edges = sorted(
            self._store.list_edges(),
            key=lambda e: (e.rel_type.rank, e.source_id, e.target_id),
        )
        for edge in edges:
            if edge.source_id not in graph or edge.target_id not in graph:
                logger.warning("Skipping dangling %s edge %d -> %d",
                               edge.rel_type.value, edge.source_id, edge.target_id)
                continue
            graph.add_edge(edge.source_id, edge.target_id, key=edge.rel_type.value)
        return graph

    # -- Transaction clustering ----------------------------------------------

    def cluster_transactions(self) -> list[TransactionCluster]:
        """Assign every transaction to a cluster of shared-user transactions.

        The cluster id is the smallest transaction id in the cluster.
        Output is ordered by transaction id.
        """
        assignments: list[TransactionCluster] = []
        for members, _ in self._transaction_components():
            cluster_id = min(members)
            assignments.extend(TransactionCluster(tx_id, cluster_id) for tx_id in members)

        assignments.sort(key=lambda c: c.transaction_id)
        return assignments

    def cluster_summaries(self) -> list[ClusterResult]:
        """One result per cluster, largest first, then by cluster id."""
        results = []
        for members, users in self._transaction_components():
            cluster_id = min(members)
            if len(members) == 1:
                explanation = f"Transaction {cluster_id} shares no user with any other transaction."
            else:
                explanation = (
                    f"{len(members)} transactions connected through "
                    f"{len(users)} shared sender/receiver user(s)."
                )
            results.append(ClusterResult(
                cluster_id=cluster_id,
                member_count=len(members),
                transaction_ids=sorted(members),
                user_ids=sorted(users),
                explanation=explanation,
            ))

        results.sort(key=lambda r: (-r.member_count, r.cluster_id))
        return results

    def _transaction_components(self) -> list[tuple[set[int], set[int]]]:
        """Connected transaction sets, each with the users touching them."""
        tx_ids = [n.id for n in self._store.list_nodes(NodeKind.TRANSACTION)]
        tx_set = set(tx_ids)

        membership = nx.Graph()
        membership.add_nodes_from(tx_ids, bipartite=1)
        for edge in self._store.list_edges(types=STRUCTURAL_TYPES):
            if edge.rel_type == RelType.SENT:
                user_id, tx_id = edge.source_id, edge.target_id
            else:
                user_id, tx_id = edge.target_id, edge.source_id
            if tx_id not in tx_set:
                continue
            membership.add_node(user_id, bipartite=0)
            membership.add_edge(user_id, tx_id)

        projected = bipartite.projected_graph(membership, tx_ids)

        components = []
        for members in nx.connected_components(projected):
            users = {u for tx_id in members for u in membership.neighbors(tx_id)}
            components.append((set(members), users))

        logger.info(
            "Clustered %d transactions into %d clusters", len(tx_ids), len(components),
        )
        return components

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _path_node(graph: nx.MultiGraph, node_id: int) -> PathNode:
        data = graph.nodes[node_id]
        return PathNode(
            id=node_id,
            type=NodeKind(data["kind"]).value,
            name=data.get("name", ""),
            device_id=data.get("device_id", ""),
        )

    @staticmethod
    def _label(graph: nx.MultiGraph, node_id: int) -> str:
        data = graph.nodes[node_id]
        if data["kind"] == NodeKind.USER and data.get("name"):
            return data["name"]
        return f"{NodeKind(data['kind']).value} {node_id}"
