"""Relationship analytics over a graph of Users and Transactions.

Usage::

    from txgraph.graph import GraphEngine

    engine = GraphEngine()
    connections = engine.relationships.user_connections(user_id)
    path = engine.analysis.shortest_path(user_id, other_id)
    clusters = engine.analysis.cluster_transactions()
    document = engine.exporter.export_graph().to_dict()
"""

from txgraph.graph.algorithms import GraphAnalysis
from txgraph.graph.engine import GraphEngine
from txgraph.graph.errors import (
    GraphError,
    NotFound,
    PartialWriteError,
    PathNotFound,
    StoreError,
    ValidationError,
)
from txgraph.graph.exporters import GraphExporter
from txgraph.graph.loader import SnapshotLoader
from txgraph.graph.relationships import RelationshipAggregator
from txgraph.graph.store import GraphStore, InMemoryGraphStore
from txgraph.graph.writer import GraphWriter

__all__ = [
    "GraphEngine",
    "GraphStore",
    "InMemoryGraphStore",
    "GraphWriter",
    "RelationshipAggregator",
    "GraphAnalysis",
    "GraphExporter",
    "SnapshotLoader",
    "GraphError",
    "NotFound",
    "PathNotFound",
    "ValidationError",
    "StoreError",
    "PartialWriteError",
]
