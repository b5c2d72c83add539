"""Full-graph export with attribute-derived transaction links.

The export contains every node with its property bag and every stored
relationship, as stored. Transaction-to-transaction links (SHARED_IP,
SHARED_DEVICE) are also derived live from node attributes on each call:

  - a pair with equal non-empty network addresses gets SHARED_IP
  - otherwise a pair with equal non-empty device ids gets SHARED_DEVICE

A derived link is emitted only when no stored edge of the same type
already covers the pair, so each (type, pair) appears once, oriented
``sourceId < targetId``.
"""

from __future__ import annotations

import itertools
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from txgraph.graph.models import (
    GraphNode,
    NodeKind,
    RelType,
)
from txgraph.graph.store import GraphStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphRelationship:
    """An exported edge with both endpoint kinds."""
    source_id: int
    source_type: str
    relationship: str
    target_id: int
    target_type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceId": self.source_id,
            "sourceType": self.source_type,
            "relationship": self.relationship,
            "targetId": self.target_id,
            "targetType": self.target_type,
        }


@dataclass
class GraphExport:
    nodes: list[GraphNode] = field(default_factory=list)
    relationships: list[GraphRelationship] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready export document."""
        return {
            "nodes": [
                {"id": n.id, "type": n.kind.value, "properties": dict(n.properties)}
                for n in self.nodes
            ],
            "relationships": [r.to_dict() for r in self.relationships],
        }


class GraphExporter:
    """Snapshot the whole graph from a ``GraphStore``."""

    def __init__(self, store: GraphStore) -> None:
        self._store = store

    def export_graph(self) -> GraphExport:
        nodes = self._store.list_nodes()
        kinds = {n.id: n.kind.value for n in nodes}

        relationships = [
            GraphRelationship(
                source_id=edge.source_id,
                source_type=kinds.get(edge.source_id, ""),
                relationship=edge.rel_type.value,
                target_id=edge.target_id,
                target_type=kinds.get(edge.target_id, ""),
            )
            for edge in self._store.list_edges()
        ]
        stored = {(r.source_id, r.relationship, r.target_id) for r in relationships}

        derived = [
            r for r in self.derive_transaction_links(
                [n for n in nodes if n.kind == NodeKind.TRANSACTION]
            )
            if (r.source_id, r.relationship, r.target_id) not in stored
        ]
        relationships.extend(derived)

        logger.info(
            "Exported %d nodes, %d relationships (%d derived)",
            len(nodes), len(relationships), len(derived),
        )
        return GraphExport(nodes=nodes, relationships=relationships)

    @staticmethod
    def derive_transaction_links(transactions: list[GraphNode]) -> list[GraphRelationship]:
        """SHARED_IP / SHARED_DEVICE pairs from attribute equality.

        Address equality wins: a pair equal on both yields one SHARED_IP.
        Result is ordered by (source id, target id).
        """
        by_address: dict[str, list[int]] = defaultdict(list)
        by_device: dict[str, list[int]] = defaultdict(list)
        for tx in sorted(transactions, key=lambda n: n.id):
            if tx.get("ipAddress"):
                by_address[tx.get("ipAddress")].append(tx.id)
            if tx.get("deviceId"):
                by_device[tx.get("deviceId")].append(tx.id)

        pairs: dict[tuple[int, int], RelType] = {}
        for ids in by_address.values():
            for pair in itertools.combinations(ids, 2):
                pairs[pair] = RelType.SHARED_IP
        for ids in by_device.values():
            for pair in itertools.combinations(ids, 2):
                pairs.setdefault(pair, RelType.SHARED_DEVICE)

        tx_type = NodeKind.TRANSACTION.value
        return [
            GraphRelationship(source, tx_type, rel.value, target, tx_type)
            for (source, target), rel in sorted(pairs.items())
        ]
