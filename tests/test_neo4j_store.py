"""Tests for the Neo4j store against a mocked driver.

The driver, session and transaction are replaced by in-process fakes;
``FakeTx`` returns queued record lists in call order and remembers every
query it ran.
"""

from unittest.mock import MagicMock

import pytest
from neo4j.exceptions import ServiceUnavailable

from txgraph.graph.errors import NotFound, StoreError
from txgraph.graph.models import Edge, Link, NodeKind, RelType
from txgraph.graph.neo4j_store import Neo4jGraphStore


class FakeTx:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def run(self, query, **params):
        self.calls.append((query, params))
        return iter(self.responses.pop(0) if self.responses else [])


def _store(*responses, database=""):
    tx = FakeTx(responses)
    driver = MagicMock()
    session = driver.session.return_value.__enter__.return_value
    session.execute_read.side_effect = lambda fn: fn(tx)
    session.execute_write.side_effect = lambda fn: fn(tx)
    return Neo4jGraphStore(driver=driver, database=database), tx, driver


class TestReads:
    def test_get_node(self):
        store, tx, _ = _store([{"id": 4, "kind": "User", "props": {"name": "Alice"}}])
        node = store.get_node(4)
        assert node.kind == NodeKind.USER
        assert node.properties == {"name": "Alice"}
        assert tx.calls[0][1] == {"id": 4}

    def test_get_missing_node(self):
        store, _, _ = _store([])
        with pytest.raises(NotFound) as exc_info:
            store.get_node(4)
        assert exc_info.value.node_id == 4

    def test_list_nodes_passes_label(self):
        store, tx, _ = _store([
            {"id": 1, "kind": "Transaction", "props": {"amount": 2.0}},
        ])
        nodes = store.list_nodes(NodeKind.TRANSACTION)
        assert [n.id for n in nodes] == [1]
        assert tx.calls[0][1] == {"kind": "Transaction"}

    def test_list_edges(self):
        store, tx, _ = _store([
            {"source": 1, "type": "SENT", "target": 3},
            {"source": 3, "type": "RECEIVED_BY", "target": 2},
        ])
        edges = store.list_edges(types=[RelType.SENT, RelType.RECEIVED_BY])
        assert edges == [Edge(RelType.SENT, 1, 3), Edge(RelType.RECEIVED_BY, 3, 2)]
        assert tx.calls[0][1] == {
            "from_id": None, "to_id": None, "types": ["SENT", "RECEIVED_BY"],
        }

    def test_database_is_selected(self):
        store, _, driver = _store([], database="payments")
        store.list_nodes()
        driver.session.assert_called_with(database="payments")

    def test_driver_failure_is_wrapped(self):
        store, _, driver = _store()
        session = driver.session.return_value.__enter__.return_value
        session.execute_read.side_effect = ServiceUnavailable("gone")
        with pytest.raises(StoreError) as exc_info:
            store.list_nodes()
        assert exc_info.value.operation == "list_nodes"


class TestWrites:
    def test_create_node_with_links(self):
        store, tx, _ = _store([{"found": [1, 2]}], [{"id": 9}])
        node_id = store.create_node(
            NodeKind.TRANSACTION,
            {"amount": 3.0},
            links=(
                Link(RelType.SENT, 1, outgoing=False),
                Link(RelType.RECEIVED_BY, 2, outgoing=True),
            ),
        )
        assert node_id == 9

        query, params = tx.calls[1]
        assert "CREATE (n:Transaction) SET n = $props" in query
        assert "CREATE (p0)-[:SENT]->(n)" in query
        assert "CREATE (n)-[:RECEIVED_BY]->(p1)" in query
        assert params == {"props": {"amount": 3.0}, "peer0": 1, "peer1": 2}

    def test_create_node_missing_peer(self):
        store, tx, _ = _store([{"found": [1]}])
        with pytest.raises(NotFound) as exc_info:
            store.create_node(
                NodeKind.TRANSACTION,
                {"amount": 3.0},
                links=(
                    Link(RelType.SENT, 1, outgoing=False),
                    Link(RelType.RECEIVED_BY, 2, outgoing=True),
                ),
            )
        assert exc_info.value.node_id == 2
        assert len(tx.calls) == 1

    def test_create_node_without_links(self):
        store, tx, _ = _store([{"id": 0}])
        assert store.create_node(NodeKind.USER, {"name": "A"}) == 0
        assert len(tx.calls) == 1

    def test_create_edge_canonical(self):
        store, tx, _ = _store([{"already": 0}])
        assert store.create_edge(RelType.SHARED_EMAIL, 5, 3) is True
        query, params = tx.calls[0]
        assert "MERGE (a)-[:SHARED_EMAIL]->(b)" in query
        assert params == {"source": 3, "target": 5}

    def test_create_edge_existing(self):
        store, _, _ = _store([{"already": 1}])
        assert store.create_edge(RelType.SENT, 1, 2) is False

    def test_create_edge_missing_endpoint(self):
        store, _, _ = _store([])
        with pytest.raises(NotFound):
            store.create_edge(RelType.SENT, 1, 2)


class TestConnect:
    def test_unreachable_server(self, monkeypatch):
        fake = MagicMock()
        fake.driver.return_value.verify_connectivity.side_effect = ServiceUnavailable("down")
        monkeypatch.setattr("txgraph.graph.neo4j_store.GraphDatabase", fake)
        with pytest.raises(StoreError, match="cannot connect"):
            Neo4jGraphStore(uri="bolt://nowhere:7687")
