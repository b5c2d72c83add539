"""Shared fixtures: a fresh engine and the three-user reference scenario.

Scenario ids (memory store allocates sequentially from 0):

    alice=0, bob=1, carol=2      Alice and Bob share an email
    t1=3  Alice -> Bob  (dev-1)
    t2=4  Bob -> Carol  (dev-1)
"""

from types import SimpleNamespace

import pytest

from txgraph.graph.engine import GraphEngine
from txgraph.graph.store import InMemoryGraphStore


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def engine(store):
    return GraphEngine(store)


@pytest.fixture
def scenario(engine):
    w = engine.writer
    alice = w.create_user("Alice", email="e1@example.com", phone="111")
    bob = w.create_user("Bob", email="e1@example.com", phone="222")
    carol = w.create_user("Carol", email="e2@example.com", phone="333")
    t1 = w.create_transaction(alice, bob, 100.0, "USD", "2024-01-01T10:00:00+00:00",
                              "Payment A to B", device_id="dev-1")
    t2 = w.create_transaction(bob, carol, 50.0, "USD", "2024-01-02T10:00:00+00:00",
                              "Payment B to C", device_id="dev-1")
    return SimpleNamespace(engine=engine, alice=alice, bob=bob, carol=carol, t1=t1, t2=t2)
