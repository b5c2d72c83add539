"""Graph engine: one store wired to every analytics component.

Usage::

    engine = GraphEngine.from_settings()

    alice = engine.writer.create_user("Alice", email="a@example.com")
    bob = engine.writer.create_user("Bob", email="a@example.com")
    engine.writer.create_transaction(alice, bob, 100.0, "USD", device_id="dev-1")

    engine.relationships.user_connections(alice)
    engine.analysis.shortest_path(alice, bob)
    engine.analysis.cluster_transactions()
    engine.exporter.export_graph().to_dict()
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from txgraph.config.settings import Settings, settings as default_settings
from txgraph.graph.algorithms import GraphAnalysis
from txgraph.graph.exporters import GraphExporter
from txgraph.graph.loader import LoadStats, SnapshotLoader
from txgraph.graph.models import NodeKind
from txgraph.graph.store import GraphStore, InMemoryGraphStore
from txgraph.graph.relationships import RelationshipAggregator
from txgraph.graph.writer import GraphWriter

logger = logging.getLogger(__name__)


class GraphEngine:
    """Build and query the user/transaction relationship graph.

    Parameters
    ----------
    store:
        The backing ``GraphStore``. Defaults to a fresh in-memory store.
    """

    def __init__(self, store: GraphStore | None = None) -> None:
        self.store = store if store is not None else InMemoryGraphStore()
        self.writer = GraphWriter(self.store)
        self.relationships = RelationshipAggregator(self.store)
        self.analysis = GraphAnalysis(self.store)
        self.exporter = GraphExporter(self.store)
        self.load_stats: LoadStats | None = None

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "GraphEngine":
        """Open the backend selected by ``GRAPH_BACKEND``."""
        config = config or default_settings

        if config.GRAPH_BACKEND == "neo4j":
            from txgraph.graph.neo4j_store import Neo4jGraphStore

            store = Neo4jGraphStore(
                uri=config.NEO4J_URI,
                user=config.NEO4J_USER,
                password=config.NEO4J_PASS,
                database=config.NEO4J_DATABASE,
                connect_timeout=config.NEO4J_CONNECT_TIMEOUT,
            )
            return cls(store)

        if config.SNAPSHOT_PATH and Path(config.SNAPSHOT_PATH).exists():
            return cls.from_snapshot(config.SNAPSHOT_PATH)
        return cls(InMemoryGraphStore())

    @classmethod
    def from_snapshot(cls, path: str | Path) -> "GraphEngine":
        """Load an export document into a new in-memory engine."""
        store, stats = SnapshotLoader().load_file(path)
        engine = cls(store)
        engine.load_stats = stats
        return engine

    def save_snapshot(self, path: str | Path) -> Path:
        """Write the current export document to ``path``."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        document = self.exporter.export_graph().to_dict()
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        logger.info("Saved snapshot to %s (%d nodes)", path, len(document["nodes"]))
        return path

    def summary(self) -> dict[str, Any]:
        """High-level graph statistics."""
        nodes = self.store.list_nodes()
        edges = self.store.list_edges()
        clusters = self.analysis.cluster_summaries()

        kind_counts: dict[str, int] = {}
        for node in nodes:
            kind_counts[node.kind.value] = kind_counts.get(node.kind.value, 0) + 1

        edge_type_counts: dict[str, int] = {}
        for edge in edges:
            edge_type_counts[edge.rel_type.value] = edge_type_counts.get(edge.rel_type.value, 0) + 1

        return {
            "node_count": len(nodes),
            "edge_count": len(edges),
            "user_count": kind_counts.get(NodeKind.USER.value, 0),
            "transaction_count": kind_counts.get(NodeKind.TRANSACTION.value, 0),
            "node_kind_distribution": kind_counts,
            "edge_type_distribution": edge_type_counts,
            "transaction_clusters": len(clusters),
            "largest_cluster_size": max((c.member_count for c in clusters), default=0),
        }

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "GraphEngine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
