"""txgraph CLI: query the user/transaction graph from the command line.

Usage:
    txgraph --snapshot graph.json add-user Alice --email a@example.com
    txgraph --snapshot graph.json add-transaction 0 1 100 --currency USD --device dev-1
    txgraph --snapshot graph.json user-connections 0
    txgraph --snapshot graph.json shortest-path 0 2
    txgraph --snapshot graph.json clusters
    txgraph --backend neo4j export -o graph.json

With the memory backend, ``--snapshot`` is loaded if it exists and
written back after every mutation.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

from txgraph.config.settings import settings
from txgraph.graph.engine import GraphEngine
from txgraph.graph.errors import GraphError, NotFound

logger = logging.getLogger(__name__)

_MUTATING = {"add-user", "add-transaction"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="txgraph",
        description="Relationship analytics over users and transactions",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "--backend", choices=["memory", "neo4j"], default=None,
        help="Graph store backend (default: GRAPH_BACKEND setting)",
    )
    parser.add_argument(
        "--snapshot", default=None,
        help="Snapshot file for the memory backend (default: SNAPSHOT_PATH setting)",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("users", help="List all users")
    subparsers.add_parser("transactions", help="List all transactions")

    user = subparsers.add_parser("add-user", help="Create a user")
    user.add_argument("name")
    user.add_argument("--email", default="")
    user.add_argument("--phone", default="")

    tx = subparsers.add_parser("add-transaction", help="Create a transaction")
    tx.add_argument("from_user", type=int)
    tx.add_argument("to_user", type=int)
    tx.add_argument("amount", type=float)
    tx.add_argument("--currency", default="")
    tx.add_argument("--timestamp", default=None, help="ISO-8601 (default: now)")
    tx.add_argument("--description", default="")
    tx.add_argument("--device", default="", help="Device id")
    tx.add_argument("--ip", default="", help="Network address")

    uc = subparsers.add_parser("user-connections", help="Users and transactions linked to a user")
    uc.add_argument("id", type=int)

    tc = subparsers.add_parser("tx-connections", help="Sender and receiver of a transaction")
    tc.add_argument("id", type=int)

    sp = subparsers.add_parser("shortest-path", help="Shortest connection between two nodes")
    sp.add_argument("from_id", type=int)
    sp.add_argument("to_id", type=int)

    cl = subparsers.add_parser("clusters", help="Transaction clusters via shared users")
    cl.add_argument("--detail", action="store_true", help="One entry per cluster with members")

    ex = subparsers.add_parser("export", help="Export the full graph as JSON")
    ex.add_argument("--output", "-o", help="Write to file instead of stdout")

    subparsers.add_parser("summary", help="Graph statistics")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        engine = _open_engine(args)
        with engine:
            result = _dispatch(engine, args)
            if args.command in _MUTATING and _snapshot_path(args) and _backend(args) == "memory":
                engine.save_snapshot(_snapshot_path(args))
    except NotFound as exc:
        logger.error("%s", exc)
        return 2
    except GraphError as exc:
        logger.error("%s failed: %s", exc.operation or args.command, exc)
        if args.verbose:
            raise
        return 1

    if result is not None:
        _emit(result)
    return 0


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _dispatch(engine: GraphEngine, args: argparse.Namespace) -> Any:
    cmd = args.command
    if cmd == "users":
        return [u.to_dict() for u in engine.relationships.list_users()]
    if cmd == "transactions":
        return [t.to_dict() for t in engine.relationships.list_transactions()]
    if cmd == "add-user":
        return {"id": engine.writer.create_user(args.name, args.email, args.phone)}
    if cmd == "add-transaction":
        return {"id": engine.writer.create_transaction(
            args.from_user, args.to_user, args.amount,
            currency=args.currency, timestamp=args.timestamp,
            description=args.description, device_id=args.device, ip_address=args.ip,
        )}
    if cmd == "user-connections":
        return engine.relationships.user_connections(args.id).to_dict()
    if cmd == "tx-connections":
        return engine.relationships.transaction_connections(args.id).to_dict()
    if cmd == "shortest-path":
        return engine.analysis.shortest_path(args.from_id, args.to_id).to_dict()
    if cmd == "clusters":
        if args.detail:
            return [dataclasses.asdict(c) for c in engine.analysis.cluster_summaries()]
        return {"clusters": [
            {"transactionId": c.transaction_id, "clusterId": c.cluster_id}
            for c in engine.analysis.cluster_transactions()
        ]}
    if cmd == "export":
        document = engine.exporter.export_graph().to_dict()
        if args.output:
            Path(args.output).write_text(json.dumps(document, indent=2), encoding="utf-8")
            print(f"Exported {len(document['nodes'])} nodes to {args.output}", file=sys.stderr)
            return None
        return document
    if cmd == "summary":
        return engine.summary()
    raise ValueError(f"unknown command {cmd!r}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _backend(args: argparse.Namespace) -> str:
    return args.backend or settings.GRAPH_BACKEND


def _snapshot_path(args: argparse.Namespace) -> str:
    return args.snapshot if args.snapshot is not None else settings.SNAPSHOT_PATH


def _open_engine(args: argparse.Namespace) -> GraphEngine:
    backend = _backend(args)
    if backend == "neo4j":
        return GraphEngine.from_settings(settings.model_copy(update={"GRAPH_BACKEND": "neo4j"}))

    snapshot = _snapshot_path(args)
    if snapshot and Path(snapshot).exists():
        return GraphEngine.from_snapshot(snapshot)
    return GraphEngine()


def _emit(result: Any) -> None:
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    sys.exit(main())
