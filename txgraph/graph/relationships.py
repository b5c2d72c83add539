"""Direct-relationship views for a single node.

For a user: every user sharing an email/phone edge with it, and every
transaction it sent or received. For a transaction: its sender and
receiver. Also hosts the typed listings of all users and transactions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from txgraph.graph.errors import NotFound
from txgraph.graph.models import (
    USER_LINK_TYPES,
    GraphNode,
    NodeKind,
    RelType,
    Transaction,
    User,
)
from txgraph.graph.store import GraphStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class UserLink:
    """A user reached over one relationship."""
    user: User
    relationship: str


@dataclass
class TransactionLink:
    """A transaction touching the subject user."""
    transaction: Transaction
    relationship: str
    counterparty_id: int | None


@dataclass
class UserConnections:
    user: User
    users: list[UserLink] = field(default_factory=list)
    transactions: list[TransactionLink] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user": self.user.to_dict(),
            "connections": {
                "users": [
                    {"node": link.user.to_dict(), "relationship": link.relationship}
                    for link in self.users
                ],
                "transactions": [
                    {
                        "node": link.transaction.to_dict(),
                        "relationship": link.relationship,
                        "counterpartyId": link.counterparty_id,
                    }
                    for link in self.transactions
                ],
            },
        }


@dataclass
class TransactionConnections:
    transaction: Transaction
    users: list[UserLink] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction": self.transaction.to_dict(),
            "connections": {
                "users": [
                    {"node": link.user.to_dict(), "relationship": link.relationship}
                    for link in self.users
                ],
            },
        }


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class RelationshipAggregator:
    """Assemble the directly-linked neighbourhood of a node."""

    def __init__(self, store: GraphStore) -> None:
        self._store = store

    def user_connections(self, user_id: int) -> UserConnections:
        """Shared-attribute users, then sent and received transactions.

        Users linked by both email and phone appear once per edge.
        """
        user = User.from_node(self._typed_node(user_id, NodeKind.USER, "user_connections"))
        result = UserConnections(user=user)

        for rel_type in USER_LINK_TYPES:
            edges = (
                self._store.list_edges(from_id=user_id, types=[rel_type])
                + self._store.list_edges(to_id=user_id, types=[rel_type])
            )
            for edge in edges:
                other = self._store.get_node(edge.other(user_id))
                result.users.append(UserLink(User.from_node(other), rel_type.value))

        for edge in self._store.list_edges(from_id=user_id, types=[RelType.SENT]):
            tx = self._transaction(self._store.get_node(edge.target_id))
            result.transactions.append(
                TransactionLink(tx, RelType.SENT.value, counterparty_id=tx.to_user_id)
            )

        for edge in self._store.list_edges(to_id=user_id, types=[RelType.RECEIVED_BY]):
            tx = self._transaction(self._store.get_node(edge.source_id))
            result.transactions.append(
                TransactionLink(tx, RelType.RECEIVED_BY.value, counterparty_id=tx.from_user_id)
            )

        logger.debug(
            "User %d: %d shared-attribute links, %d transactions",
            user_id, len(result.users), len(result.transactions),
        )
        return result

    def transaction_connections(self, tx_id: int) -> TransactionConnections:
        """Sender (SENT) then receiver (RECEIVED_BY); a missing side is omitted."""
        node = self._typed_node(tx_id, NodeKind.TRANSACTION, "transaction_connections")
        tx = self._transaction(node)
        result = TransactionConnections(transaction=tx)

        if tx.from_user_id is not None:
            sender = User.from_node(self._store.get_node(tx.from_user_id))
            result.users.append(UserLink(sender, RelType.SENT.value))
        if tx.to_user_id is not None:
            receiver = User.from_node(self._store.get_node(tx.to_user_id))
            result.users.append(UserLink(receiver, RelType.RECEIVED_BY.value))

        return result

    # -- Listings ------------------------------------------------------------

    def list_users(self) -> list[User]:
        return [User.from_node(n) for n in self._store.list_nodes(NodeKind.USER)]

    def list_transactions(self) -> list[Transaction]:
        """All transactions with sender/receiver resolved in one edge scan."""
        senders: dict[int, int] = {}
        receivers: dict[int, int] = {}
        for edge in self._store.list_edges(types=[RelType.SENT, RelType.RECEIVED_BY]):
            if edge.rel_type == RelType.SENT:
                senders.setdefault(edge.target_id, edge.source_id)
            else:
                receivers.setdefault(edge.source_id, edge.target_id)

        return [
            Transaction.from_node(n, senders.get(n.id), receivers.get(n.id))
            for n in self._store.list_nodes(NodeKind.TRANSACTION)
        ]

    # -- Helpers -------------------------------------------------------------

    def _typed_node(self, node_id: int, kind: NodeKind, operation: str) -> GraphNode:
        try:
            node = self._store.get_node(node_id)
        except NotFound:
            raise NotFound(kind.value, node_id, operation) from None
        if node.kind != kind:
            raise NotFound(kind.value, node_id, operation)
        return node

    def _transaction(self, node: GraphNode) -> Transaction:
        sent = self._store.list_edges(to_id=node.id, types=[RelType.SENT])
        received = self._store.list_edges(from_id=node.id, types=[RelType.RECEIVED_BY])
        return Transaction.from_node(
            node,
            from_user_id=sent[0].source_id if sent else None,
            to_user_id=received[0].target_id if received else None,
        )
