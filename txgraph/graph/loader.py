"""Export document -> in-memory graph store.

Reads the document produced by ``GraphExport.to_dict()`` back into an
``InMemoryGraphStore``, keeping node ids, so an export can be analysed
offline or used as a file-backed store by the CLI.

Two passes, nodes first then relationships. Relationships pointing at
ids that are not in the document are counted as orphan references and
dropped. Derived transaction links in the document are loaded like any
other edge, so a reloaded store exports the same relationships.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from txgraph.graph.models import (
    TRANSACTION_PROPERTIES,
    USER_PROPERTIES,
    NodeKind,
    RelType,
)
from txgraph.graph.store import InMemoryGraphStore

logger = logging.getLogger(__name__)

_ALLOWED_PROPERTIES: dict[NodeKind, tuple[str, ...]] = {
    NodeKind.USER: USER_PROPERTIES,
    NodeKind.TRANSACTION: TRANSACTION_PROPERTIES,
}


@dataclass
class LoadStats:
    """Statistics from a snapshot load."""

    nodes_loaded: int = 0
    edges_loaded: int = 0
    duplicate_edges: int = 0
    orphan_references: int = 0
    skipped_entries: int = 0
    kind_counts: dict[str, int] = field(default_factory=dict)
    edge_type_counts: dict[str, int] = field(default_factory=dict)


class SnapshotLoader:
    """Build an ``InMemoryGraphStore`` from an export document.

    Parameters
    ----------
    max_nodes:
        Safety cap on graph size. Nodes beyond it are skipped.
    """

    def __init__(self, max_nodes: int = 100_000) -> None:
        self._max_nodes = max_nodes

    def load_file(self, path: str | Path) -> tuple[InMemoryGraphStore, LoadStats]:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
        store, stats = self.load(document)
        logger.info(
            "Loaded snapshot %s: %d nodes, %d edges (%d orphan references, %d skipped)",
            path, stats.nodes_loaded, stats.edges_loaded,
            stats.orphan_references, stats.skipped_entries,
        )
        return store, stats

    def load(self, document: dict[str, Any]) -> tuple[InMemoryGraphStore, LoadStats]:
        store = InMemoryGraphStore()
        stats = LoadStats()

        nodes = document.get("nodes") or []
        for index, entry in enumerate(nodes):
            if stats.nodes_loaded >= self._max_nodes:
                stats.skipped_entries += len(nodes) - index
                logger.warning("Node cap reached (%d). Skipping remaining nodes.", self._max_nodes)
                break
            self._add_node(store, entry, stats)

        for entry in document.get("relationships") or []:
            self._add_edge(store, entry, stats)

        return store, stats

    def _add_node(self, store: InMemoryGraphStore, entry: dict[str, Any], stats: LoadStats) -> None:
        try:
            node_id = int(entry["id"])
            kind = NodeKind(entry.get("type", ""))
        except (KeyError, TypeError, ValueError):
            stats.skipped_entries += 1
            return

        raw = entry.get("properties") or {}
        if not isinstance(raw, dict):
            stats.skipped_entries += 1
            return
        props = {k: v for k, v in raw.items() if k in _ALLOWED_PROPERTIES[kind]}
        if not store.restore_node(node_id, kind, props):
            stats.skipped_entries += 1
            return

        stats.nodes_loaded += 1
        stats.kind_counts[kind.value] = stats.kind_counts.get(kind.value, 0) + 1

    def _add_edge(self, store: InMemoryGraphStore, entry: dict[str, Any], stats: LoadStats) -> None:
        try:
            rel_type = RelType(entry["relationship"])
            source_id = int(entry["sourceId"])
            target_id = int(entry["targetId"])
        except (KeyError, TypeError, ValueError):
            stats.skipped_entries += 1
            return

        if source_id not in store.graph or target_id not in store.graph:
            stats.orphan_references += 1
            return

        if not store.create_edge(rel_type, source_id, target_id):
            stats.duplicate_edges += 1
            return

        stats.edges_loaded += 1
        stats.edge_type_counts[rel_type.value] = stats.edge_type_counts.get(rel_type.value, 0) + 1
