"""Agent-to-agent trace store and the bus that writes into it."""
from __future__ import annotations

import asyncio
import random
import threading
from collections import deque
from typing import Any, Deque, List, Optional, Tuple

from .models import A2AEnvelope, A2AMessage, Direction, new_correlation_id

DEFAULT_MAX_SIZE = 200


class TraceStore:
    """Bounded sliding window of A2A envelopes, oldest entries evicted first."""

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._entries: Deque[A2AEnvelope] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, envelope: A2AEnvelope) -> None:
        with self._lock:
            self._entries.append(envelope)

    def drain_all(self) -> List[A2AEnvelope]:
        """Return every buffered envelope and clear the buffer in one step."""
        with self._lock:
            snapshot = list(self._entries)
            self._entries.clear()
        return snapshot

    def peek_recent(self, count: int = 50) -> List[A2AEnvelope]:
        if count <= 0:
            return []
        with self._lock:
            return list(self._entries)[-count:]


class TraceBus:
    """Records request/response envelopes and simulates the network hop."""

    def __init__(
        self,
        store: TraceStore,
        *,
        simulate_latency: bool = True,
        request_delay: Tuple[float, float] = (0.1, 0.3),
        response_delay: Tuple[float, float] = (0.05, 0.15),
    ) -> None:
        self.store = store
        self.simulate_latency = simulate_latency
        self._request_delay = request_delay
        self._response_delay = response_delay

    async def send_request(
        self,
        sender_id: str,
        recipient_id: str,
        payload: Any = None,
        correlation_id: Optional[str] = None,
    ) -> str:
        """Record a request envelope and return its correlation id."""
        message = A2AMessage(
            sender_id=sender_id,
            recipient_id=recipient_id,
            kind="request",
            payload=payload,
            correlation_id=correlation_id or new_correlation_id(),
        )
        self.store.push(A2AEnvelope(Direction.REQUEST, message))
        await self._delay(self._request_delay)
        return message.correlation_id

    async def send_response(
        self,
        sender_id: str,
        recipient_id: str,
        payload: Any = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        message = A2AMessage(
            sender_id=sender_id,
            recipient_id=recipient_id,
            kind="response",
            payload=payload,
            correlation_id=correlation_id or new_correlation_id(),
        )
        self.store.push(A2AEnvelope(Direction.RESPONSE, message))
        await self._delay(self._response_delay)

    async def _delay(self, bounds: Tuple[float, float]) -> None:
        if self.simulate_latency:
            await asyncio.sleep(random.uniform(*bounds))
