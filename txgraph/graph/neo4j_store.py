"""Graph Store backed by Neo4j.

Node ids are Neo4j internal ids, node labels are the ``NodeKind``
values and relationship types are the ``RelType`` values. Every public
method runs in a single managed transaction, so a transaction node and
its SENT/RECEIVED_BY edges commit together.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Sequence

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from txgraph.graph.errors import NotFound, StoreError
from txgraph.graph.models import Edge, GraphNode, Link, NodeKind, RelType
from txgraph.graph.store import GraphStore

logger = logging.getLogger(__name__)


_GET_NODE = """
MATCH (n) WHERE id(n) = $id
RETURN id(n) AS id, labels(n)[0] AS kind, properties(n) AS props
"""

_LIST_NODES = """
MATCH (n)
WHERE $kind IS NULL OR $kind IN labels(n)
RETURN id(n) AS id, labels(n)[0] AS kind, properties(n) AS props
ORDER BY id(n)
"""

_LIST_EDGES = """
MATCH (a)-[r]->(b)
WHERE ($from_id IS NULL OR id(a) = $from_id)
  AND ($to_id IS NULL OR id(b) = $to_id)
  AND ($types IS NULL OR type(r) IN $types)
RETURN id(a) AS source, type(r) AS type, id(b) AS target
ORDER BY id(r)
"""

_FIND_PEERS = """
MATCH (n) WHERE id(n) IN $ids
RETURN collect(id(n)) AS found
"""

_CREATE_EDGE = """
MATCH (a), (b) WHERE id(a) = $source AND id(b) = $target
OPTIONAL MATCH (a)-[existing:{rel}]->(b)
WITH a, b, count(existing) AS already
MERGE (a)-[:{rel}]->(b)
RETURN already
"""


class Neo4jGraphStore(GraphStore):
    """``GraphStore`` implementation on the official Neo4j driver.

    Parameters
    ----------
    uri, user, password:
        Bolt connection details.
    database:
        Target database name; empty string uses the server default.
    driver:
        Pre-built driver, mainly for tests. Skips connectivity checks.
    """

    def __init__(
        self,
        uri: str = "",
        user: str = "",
        password: str = "",
        database: str = "",
        connect_timeout: float = 5.0,
        driver: Any = None,
    ) -> None:
        self._database = database or None
        if driver is not None:
            self._driver = driver
            return

        try:
            self._driver = GraphDatabase.driver(
                uri,
                auth=(user, password),
                connection_timeout=connect_timeout,
            )
            self._driver.verify_connectivity()
        except (Neo4jError, DriverError, OSError) as exc:
            logger.error("Neo4j connection to %s failed: %s", uri, exc)
            raise StoreError(f"cannot connect to Neo4j at {uri}: {exc}", "connect") from exc

        logger.info("Connected to Neo4j at %s", uri)

    def close(self) -> None:
        self._driver.close()

    # -- Reads ---------------------------------------------------------------

    def get_node(self, node_id: int) -> GraphNode:
        records = self._read("get_node", _GET_NODE, id=node_id)
        if not records:
            raise NotFound("Node", node_id, "get_node")
        return self._to_node(records[0])

    def list_nodes(self, kind: NodeKind | None = None) -> list[GraphNode]:
        records = self._read(
            "list_nodes", _LIST_NODES, kind=NodeKind(kind).value if kind else None,
        )
        return [self._to_node(r) for r in records]

    def list_edges(
        self,
        from_id: int | None = None,
        to_id: int | None = None,
        types: Iterable[RelType] | None = None,
    ) -> list[Edge]:
        type_names = [RelType(t).value for t in types] if types is not None else None
        records = self._read(
            "list_edges", _LIST_EDGES, from_id=from_id, to_id=to_id, types=type_names,
        )
        return [Edge(RelType(r["type"]), r["source"], r["target"]) for r in records]

    # -- Writes --------------------------------------------------------------

    def create_node(
        self,
        kind: NodeKind,
        properties: dict[str, Any],
        links: Sequence[Link] = (),
    ) -> int:
        kind = NodeKind(kind)
        peer_ids = sorted({link.peer_id for link in links})

        def work(tx: Any) -> int:
            if peer_ids:
                found = set(list(tx.run(_FIND_PEERS, ids=peer_ids))[0]["found"])
                missing = [p for p in peer_ids if p not in found]
                if missing:
                    raise NotFound("Node", missing[0], "create_node")
            records = list(tx.run(self._create_node_query(kind, links), props=properties,
                                  **{f"peer{i}": link.peer_id for i, link in enumerate(links)}))
            return records[0]["id"]

        node_id = self._write("create_node", work)
        logger.debug("Created %s node %d with %d links", kind.value, node_id, len(links))
        return node_id

    def create_edge(self, rel_type: RelType, source_id: int, target_id: int) -> bool:
        edge = Edge.canonical(RelType(rel_type), source_id, target_id)
        query = _CREATE_EDGE.replace("{rel}", edge.rel_type.value)

        def work(tx: Any) -> bool:
            records = list(tx.run(query, source=edge.source_id, target=edge.target_id))
            if not records:
                # one of the endpoints is absent
                raise NotFound("Node", edge.source_id, "create_edge")
            return records[0]["already"] == 0

        return self._write("create_edge", work)

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _create_node_query(kind: NodeKind, links: Sequence[Link]) -> str:
        lines = []
        for i in range(len(links)):
            lines.append(f"MATCH (p{i}) WHERE id(p{i}) = $peer{i}")
        lines.append(f"CREATE (n:{kind.value}) SET n = $props")
        for i, link in enumerate(links):
            rel = RelType(link.rel_type).value
            if link.outgoing:
                lines.append(f"CREATE (n)-[:{rel}]->(p{i})")
            else:
                lines.append(f"CREATE (p{i})-[:{rel}]->(n)")
        lines.append("RETURN id(n) AS id")
        return "\n".join(lines)

    def _session(self) -> Any:
        if self._database:
            return self._driver.session(database=self._database)
        return self._driver.session()

    def _read(self, operation: str, query: str, **params: Any) -> list[Any]:
        try:
            with self._session() as session:
                return session.execute_read(lambda tx: list(tx.run(query, **params)))
        except (Neo4jError, DriverError) as exc:
            logger.warning("Neo4j %s failed: %s", operation, exc)
            raise StoreError(f"{operation} failed: {exc}", operation) from exc

    def _write(self, operation: str, work: Callable[[Any], Any]) -> Any:
        try:
            with self._session() as session:
                return session.execute_write(work)
        except (Neo4jError, DriverError) as exc:
            logger.warning("Neo4j %s failed: %s", operation, exc)
            raise StoreError(f"{operation} failed: {exc}", operation) from exc

    @staticmethod
    def _to_node(record: Any) -> GraphNode:
        return GraphNode(
            id=record["id"],
            kind=NodeKind(record["kind"]),
            properties=dict(record["props"]),
        )
