"""Node creation: users, transactions and their write-time derived links.

A new node is compared against every existing node of the same kind and
linked with SHARED_* edges on equal non-empty attributes. Derived linking
happens after the node (and, for transactions, its SENT/RECEIVED_BY
edges) is committed; if it fails the node id stays valid and a
``PartialWriteError`` carrying that id is raised.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from txgraph.graph.errors import NotFound, PartialWriteError, StoreError, ValidationError
from txgraph.graph.models import Link, NodeKind, RelType
from txgraph.graph.store import GraphStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class UserInput(BaseModel):
    """Fields accepted when creating a User."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""


class TransactionInput(BaseModel):
    """Fields accepted when creating a Transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    from_user_id: int
    to_user_id: int
    amount: float = Field(..., allow_inf_nan=False)
    currency: str = ""
    timestamp: Optional[datetime] = None
    description: str = ""
    device_id: str = ""
    ip_address: str = ""

    def properties(self) -> dict[str, Any]:
        ts = self.timestamp or datetime.now(timezone.utc)
        return {
            "amount": self.amount,
            "currency": self.currency,
            "timestamp": ts.isoformat(),
            "description": self.description,
            "deviceId": self.device_id,
            "ipAddress": self.ip_address,
        }


# Attribute -> derived relationship, per node kind
USER_MATCH_KEYS: dict[str, RelType] = {
    "email": RelType.SHARED_EMAIL,
    "phone": RelType.SHARED_PHONE,
}
TRANSACTION_MATCH_KEYS: dict[str, RelType] = {
    "deviceId": RelType.SHARED_DEVICE,
    "ipAddress": RelType.SHARED_IP,
}


def _validate(model: type[BaseModel], operation: str, **fields: Any) -> Any:
    try:
        return model(**fields)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"{operation}: invalid input ({exc.error_count()} error(s))",
            operation,
            errors=exc.errors(include_url=False),
        ) from exc


class GraphWriter:
    """Create User and Transaction nodes through a ``GraphStore``."""

    def __init__(self, store: GraphStore) -> None:
        self._store = store

    def create_user(self, name: str, email: str = "", phone: str = "") -> int:
        """Create a User and link it to users sharing its email or phone."""
        data = _validate(UserInput, "create_user", name=name, email=email, phone=phone)
        props = data.model_dump()

        node_id = self._store.create_node(NodeKind.USER, props)
        logger.info("Created user %d (%s)", node_id, data.name)

        linked = self._link_matching(node_id, NodeKind.USER, props, USER_MATCH_KEYS, "create_user")
        if linked:
            logger.info("User %d linked to %d user(s) by shared attributes", node_id, linked)
        return node_id

    def create_transaction(
        self,
        from_user_id: int,
        to_user_id: int,
        amount: float,
        currency: str = "",
        timestamp: datetime | str | None = None,
        description: str = "",
        device_id: str = "",
        ip_address: str = "",
    ) -> int:
        """Create a Transaction with its SENT and RECEIVED_BY edges.

        Raises ``NotFound`` when either endpoint is not an existing User.
        """
        data = _validate(
            TransactionInput, "create_transaction",
            from_user_id=from_user_id, to_user_id=to_user_id, amount=amount,
            currency=currency, timestamp=timestamp, description=description,
            device_id=device_id, ip_address=ip_address,
        )
        for user_id in (data.from_user_id, data.to_user_id):
            self._require_user(user_id, "create_transaction")

        props = data.properties()
        node_id = self._store.create_node(
            NodeKind.TRANSACTION,
            props,
            links=(
                Link(RelType.SENT, data.from_user_id, outgoing=False),
                Link(RelType.RECEIVED_BY, data.to_user_id, outgoing=True),
            ),
        )
        logger.info(
            "Created transaction %d: %d -> %d (%s %s)",
            node_id, data.from_user_id, data.to_user_id, data.amount, data.currency,
        )

        linked = self._link_matching(
            node_id, NodeKind.TRANSACTION, props, TRANSACTION_MATCH_KEYS, "create_transaction",
        )
        if linked:
            logger.info("Transaction %d linked to %d transaction(s) by device/address", node_id, linked)
        return node_id

    # -- Helpers -------------------------------------------------------------

    def _require_user(self, user_id: int, operation: str) -> None:
        try:
            node = self._store.get_node(user_id)
        except NotFound:
            raise NotFound(NodeKind.USER.value, user_id, operation) from None
        if node.kind != NodeKind.USER:
            raise NotFound(NodeKind.USER.value, user_id, operation)

    def _link_matching(
        self,
        node_id: int,
        kind: NodeKind,
        props: dict[str, Any],
        match_keys: dict[str, RelType],
        operation: str,
    ) -> int:
        """Create derived edges to every other node with an equal attribute."""
        wanted = {key: props.get(key) for key in match_keys if props.get(key)}
        if not wanted:
            return 0

        created = 0
        try:
            for other in self._store.list_nodes(kind):
                if other.id == node_id:
                    continue
                for key, value in wanted.items():
                    if other.get(key) == value:
                        if self._store.create_edge(match_keys[key], node_id, other.id):
                            created += 1
        except StoreError as exc:
            logger.error("Linking %s %d failed after creation: %s", kind.value, node_id, exc)
            raise PartialWriteError(
                node_id, f"{kind.value} {node_id} created but derived linking failed: {exc}", operation,
            ) from exc
        return created
