"""Tests for the bounded trace store and the bus writing into it."""
from __future__ import annotations

import threading

import pytest

from floodguard.core.models import A2AEnvelope, A2AMessage, Direction
from floodguard.core.trace import TraceBus, TraceStore


def _envelope(index: int) -> A2AEnvelope:
    return A2AEnvelope(
        Direction.REQUEST,
        A2AMessage(sender_id="A0", recipient_id="A1", kind="request", payload={"n": index}),
    )


def test_store_never_exceeds_bound_and_drops_oldest() -> None:
    store = TraceStore(max_size=200)
    for i in range(450):
        store.push(_envelope(i))
        assert len(store) <= 200

    entries = store.peek_recent(200)
    assert [e.message.payload["n"] for e in entries] == list(range(250, 450))


def test_drain_is_exhaustive() -> None:
    store = TraceStore()
    for i in range(5):
        store.push(_envelope(i))

    drained = store.drain_all()

    assert len(drained) == 5
    assert store.peek_recent(1) == []
    assert store.peek_recent(50) == []
    assert store.drain_all() == []


def test_peek_recent_does_not_mutate() -> None:
    store = TraceStore()
    for i in range(10):
        store.push(_envelope(i))

    recent = store.peek_recent(3)

    assert [e.message.payload["n"] for e in recent] == [7, 8, 9]
    assert len(store) == 10
    assert store.peek_recent(0) == []


def test_rejects_non_positive_bound() -> None:
    with pytest.raises(ValueError):
        TraceStore(max_size=0)


def test_concurrent_push_and_drain_lose_nothing() -> None:
    store = TraceStore(max_size=100_000)
    collected = []
    done = threading.Event()

    def producer(offset: int) -> None:
        for i in range(2000):
            store.push(_envelope(offset + i))

    def consumer() -> None:
        while not done.is_set():
            collected.extend(store.drain_all())

    drainer = threading.Thread(target=consumer)
    drainer.start()
    producers = [threading.Thread(target=producer, args=(n * 10_000,)) for n in range(4)]
    for thread in producers:
        thread.start()
    for thread in producers:
        thread.join()
    done.set()
    drainer.join()
    collected.extend(store.drain_all())

    ids = [e.message.payload["n"] for e in collected]
    assert len(ids) == 8000
    assert len(set(ids)) == 8000


def test_envelope_wire_shape() -> None:
    message = A2AMessage(
        sender_id="A1", recipient_id="A0", kind="response", payload={"ok": True}, correlation_id="cycle-1"
    )
    data = A2AEnvelope(Direction.RESPONSE, message).to_dict()

    assert data["dir"] == "←"
    assert data["env"]["a2a"] == "1.0"
    assert data["env"]["from"] == "A1"
    assert data["env"]["to"] == "A0"
    assert data["env"]["type"] == "response"
    assert data["env"]["correlationId"] == "cycle-1"
    assert data["env"]["payload"] == {"ok": True}
    assert data["env"]["id"]
    assert data["env"]["timestamp"]


@pytest.mark.anyio
async def test_bus_records_requests_and_responses() -> None:
    store = TraceStore()
    bus = TraceBus(store, simulate_latency=False)

    corr = await bus.send_request("A0", "A4", {"phase": "FUSE"}, "cycle-42")
    await bus.send_response("A4", "A0", {"riskTier": "SAFE"}, corr)
    generated = await bus.send_request("A0", "A6")

    entries = store.drain_all()
    assert corr == "cycle-42"
    assert [e.direction for e in entries] == [Direction.REQUEST, Direction.RESPONSE, Direction.REQUEST]
    assert entries[1].message.correlation_id == "cycle-42"
    assert generated.startswith("corr-")
    assert entries[0].message.message_id != entries[1].message.message_id
