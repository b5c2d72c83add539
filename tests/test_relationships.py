"""Tests for single-node relationship views and listings."""

import pytest

from txgraph.graph.errors import NotFound
from txgraph.graph.models import NodeKind


class TestUserConnections:
    def test_shared_email_user(self, scenario):
        result = scenario.engine.relationships.user_connections(scenario.alice)
        assert result.user.name == "Alice"
        assert [(link.user.id, link.relationship) for link in result.users] == [
            (scenario.bob, "SHARED_EMAIL"),
        ]

    def test_unrelated_user_is_absent(self, scenario):
        result = scenario.engine.relationships.user_connections(scenario.alice)
        assert scenario.carol not in {link.user.id for link in result.users}

    def test_shared_links_are_symmetric(self, scenario):
        result = scenario.engine.relationships.user_connections(scenario.bob)
        assert [(link.user.id, link.relationship) for link in result.users] == [
            (scenario.alice, "SHARED_EMAIL"),
        ]

    def test_sent_then_received(self, scenario):
        result = scenario.engine.relationships.user_connections(scenario.bob)
        assert [
            (link.transaction.id, link.relationship, link.counterparty_id)
            for link in result.transactions
        ] == [
            (scenario.t2, "SENT", scenario.carol),
            (scenario.t1, "RECEIVED_BY", scenario.alice),
        ]

    def test_transaction_carries_endpoints(self, scenario):
        result = scenario.engine.relationships.user_connections(scenario.alice)
        (link,) = result.transactions
        assert link.transaction.from_user_id == scenario.alice
        assert link.transaction.to_user_id == scenario.bob
        assert link.transaction.amount == 100.0
        assert link.transaction.device_id == "dev-1"

    def test_user_sharing_two_attributes_appears_twice(self, engine):
        a = engine.writer.create_user("A", email="x@example.com", phone="1")
        b = engine.writer.create_user("B", email="x@example.com", phone="1")
        result = engine.relationships.user_connections(a)
        assert [(link.user.id, link.relationship) for link in result.users] == [
            (b, "SHARED_EMAIL"),
            (b, "SHARED_PHONE"),
        ]

    def test_self_transfer_listed_both_ways(self, engine):
        a = engine.writer.create_user("A")
        tx = engine.writer.create_transaction(a, a, 3.0)
        result = engine.relationships.user_connections(a)
        assert [(link.transaction.id, link.relationship) for link in result.transactions] == [
            (tx, "SENT"),
            (tx, "RECEIVED_BY"),
        ]

    def test_isolated_user(self, engine):
        a = engine.writer.create_user("Loner")
        result = engine.relationships.user_connections(a)
        assert result.users == []
        assert result.transactions == []

    def test_missing_user(self, engine):
        with pytest.raises(NotFound) as exc_info:
            engine.relationships.user_connections(5)
        assert exc_info.value.kind == "User"

    def test_transaction_id_is_rejected(self, scenario):
        with pytest.raises(NotFound):
            scenario.engine.relationships.user_connections(scenario.t1)

    def test_to_dict(self, scenario):
        data = scenario.engine.relationships.user_connections(scenario.alice).to_dict()
        assert data["user"]["id"] == scenario.alice
        assert data["connections"]["users"][0] == {
            "node": {"id": scenario.bob, "name": "Bob", "email": "e1@example.com", "phone": "222"},
            "relationship": "SHARED_EMAIL",
        }
        tx = data["connections"]["transactions"][0]
        assert tx["relationship"] == "SENT"
        assert tx["counterpartyId"] == scenario.bob
        assert tx["node"]["fromUserId"] == scenario.alice
        assert tx["node"]["deviceId"] == "dev-1"


class TestTransactionConnections:
    def test_sender_then_receiver(self, scenario):
        result = scenario.engine.relationships.transaction_connections(scenario.t1)
        assert [(link.user.name, link.relationship) for link in result.users] == [
            ("Alice", "SENT"),
            ("Bob", "RECEIVED_BY"),
        ]

    def test_unlinked_transaction_has_no_users(self, store, engine):
        tx = store.create_node(NodeKind.TRANSACTION, {"amount": 1.0})
        result = engine.relationships.transaction_connections(tx)
        assert result.users == []
        assert result.transaction.from_user_id is None

    def test_user_id_is_rejected(self, scenario):
        with pytest.raises(NotFound) as exc_info:
            scenario.engine.relationships.transaction_connections(scenario.alice)
        assert exc_info.value.kind == "Transaction"

    def test_to_dict(self, scenario):
        data = scenario.engine.relationships.transaction_connections(scenario.t2).to_dict()
        assert data["transaction"]["id"] == scenario.t2
        assert [u["relationship"] for u in data["connections"]["users"]] == [
            "SENT", "RECEIVED_BY",
        ]


class TestListings:
    def test_list_users(self, scenario):
        users = scenario.engine.relationships.list_users()
        assert [u.name for u in users] == ["Alice", "Bob", "Carol"]

    def test_list_transactions(self, scenario):
        txs = scenario.engine.relationships.list_transactions()
        assert [(t.id, t.from_user_id, t.to_user_id) for t in txs] == [
            (scenario.t1, scenario.alice, scenario.bob),
            (scenario.t2, scenario.bob, scenario.carol),
        ]

    def test_list_transactions_keeps_unlinked(self, store, engine):
        tx = store.create_node(NodeKind.TRANSACTION, {"amount": 2.0})
        (listed,) = engine.relationships.list_transactions()
        assert listed.id == tx
        assert listed.from_user_id is None and listed.to_user_id is None

    def test_empty_graph(self, engine):
        assert engine.relationships.list_users() == []
        assert engine.relationships.list_transactions() == []
