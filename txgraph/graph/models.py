"""Core data model: nodes, edges and the typed User/Transaction views.

Users and Transactions share one id space. The store hands out
``GraphNode`` records (id, kind, property bag); ``User`` and
``Transaction`` are typed views built from them.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union


class NodeKind(str, enum.Enum):
    USER = "User"
    TRANSACTION = "Transaction"


class RelType(str, enum.Enum):
    """Relationship types, in enumeration order."""

    SENT = "SENT"
    RECEIVED_BY = "RECEIVED_BY"
    SHARED_EMAIL = "SHARED_EMAIL"
    SHARED_PHONE = "SHARED_PHONE"
    SHARED_DEVICE = "SHARED_DEVICE"
    SHARED_IP = "SHARED_IP"

    @property
    def directed(self) -> bool:
        return self in STRUCTURAL_TYPES

    @property
    def derived(self) -> bool:
        return not self.directed

    @property
    def rank(self) -> int:
        return _REL_ORDER[self]


STRUCTURAL_TYPES = frozenset({RelType.SENT, RelType.RECEIVED_BY})
USER_LINK_TYPES = (RelType.SHARED_EMAIL, RelType.SHARED_PHONE)
TRANSACTION_LINK_TYPES = (RelType.SHARED_DEVICE, RelType.SHARED_IP)

_REL_ORDER = {rel: i for i, rel in enumerate(RelType)}

# Property bag keys, shared by every backend and by the export document.
USER_PROPERTIES = ("name", "email", "phone")
TRANSACTION_PROPERTIES = (
    "amount", "currency", "timestamp", "description", "deviceId", "ipAddress",
)


@dataclass(frozen=True)
class GraphNode:
    """A stored node: global id, kind tag and its property bag."""

    id: int
    kind: NodeKind
    properties: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = "") -> Any:
        value = self.properties.get(key)
        return default if value is None else value


@dataclass(frozen=True)
class Edge:
    """A stored relationship.

    SHARED_* edges are undirected and kept with ``source_id < target_id``.
    """

    rel_type: RelType
    source_id: int
    target_id: int

    def other(self, node_id: int) -> int:
        return self.target_id if node_id == self.source_id else self.source_id

    @classmethod
    def canonical(cls, rel_type: RelType, source_id: int, target_id: int) -> "Edge":
        if rel_type.derived and source_id > target_id:
            source_id, target_id = target_id, source_id
        return cls(rel_type, source_id, target_id)


@dataclass(frozen=True)
class Link:
    """A mandatory edge created together with a new node.

    ``outgoing`` means new node -> peer; otherwise peer -> new node.
    """

    rel_type: RelType
    peer_id: int
    outgoing: bool


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str = ""
    phone: str = ""

    @classmethod
    def from_node(cls, node: GraphNode) -> "User":
        return cls(
            id=node.id,
            name=node.get("name"),
            email=node.get("email"),
            phone=node.get("phone"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email, "phone": self.phone}


@dataclass(frozen=True)
class Transaction:
    id: int
    from_user_id: int | None
    to_user_id: int | None
    amount: float
    currency: str = ""
    timestamp: str = ""
    description: str = ""
    device_id: str = ""
    ip_address: str = ""

    @classmethod
    def from_node(
        cls,
        node: GraphNode,
        from_user_id: int | None = None,
        to_user_id: int | None = None,
    ) -> "Transaction":
        return cls(
            id=node.id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=float(node.get("amount", 0.0)),
            currency=node.get("currency"),
            timestamp=node.get("timestamp"),
            description=node.get("description"),
            device_id=node.get("deviceId"),
            ip_address=node.get("ipAddress"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fromUserId": self.from_user_id,
            "toUserId": self.to_user_id,
            "amount": self.amount,
            "currency": self.currency,
            "timestamp": self.timestamp,
            "description": self.description,
            "deviceId": self.device_id,
            "ipAddress": self.ip_address,
        }


Node = Union[User, Transaction]
