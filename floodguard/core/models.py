"""Core data models shared across orchestrator components."""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, Optional

A2A_VERSION = "1.0"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_correlation_id(prefix: str = "corr") -> str:
    """Time-based id with a random suffix, unique per invocation."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class AgentState(Enum):
    """Lifecycle states for an agent managed by the orchestrator."""

    IDLE = auto()
    RUNNING = auto()
    FAILED = auto()


class CyclePhase(Enum):
    """States of one orchestrator cycle."""

    IDLE = "IDLE"
    PARALLEL = "PARALLEL"
    FUSE = "FUSE"
    COMMS = "COMMS"
    PERSISTING = "PERSISTING"
    DONE = "DONE"
    FAILED = "FAILED"


class Direction(str, Enum):
    REQUEST = "→"
    RESPONSE = "←"


@dataclass(slots=True)
class AgentConfig:
    """Static configuration of one agent."""

    name: str
    role: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class AgentDescriptor:
    """Descriptor kept by each agent and reported to status pollers."""

    agent_id: str
    config: AgentConfig
    state: AgentState = AgentState.IDLE
    task_count: int = 0
    last_error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Location:
    latitude: float
    longitude: float
    label: str = "Delhi"
    zone_id: str = "delhi"


@dataclass(frozen=True, slots=True)
class AgentContext:
    """Input handed to every agent invocation.

    Contexts are never mutated: later phases receive a new context built with
    :meth:`derive`.
    """

    location: Optional[Location] = None
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def zone_label(self) -> str:
        return self.location.label if self.location else "Delhi"

    def derive(self, **extra: Any) -> AgentContext:
        """Return a copy whose params are the shallow merge of these params and ``extra``."""
        return replace(self, params={**self.params, **extra})


@dataclass(frozen=True, slots=True)
class A2AMessage:
    """Canonical message exchanged between agents."""

    sender_id: str
    recipient_id: str
    kind: str
    payload: Any = None
    correlation_id: Optional[str] = None
    message_id: str = field(
        default_factory=lambda: f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
    )
    timestamp: str = field(default_factory=utc_now_iso)
    version: str = A2A_VERSION


@dataclass(frozen=True, slots=True)
class A2AEnvelope:
    """One trace record: a message plus the direction it travelled."""

    direction: Direction
    message: A2AMessage

    def to_dict(self) -> Dict[str, Any]:
        msg = self.message
        return {
            "dir": self.direction.value,
            "env": {
                "a2a": msg.version,
                "id": msg.message_id,
                "from": msg.sender_id,
                "to": msg.recipient_id,
                "type": msg.kind,
                "timestamp": msg.timestamp,
                "payload": msg.payload,
                "correlationId": msg.correlation_id,
            },
        }


@dataclass(slots=True)
class CycleResult:
    """Outcome of one orchestrator cycle."""

    success: bool
    correlation_id: str
    timestamp: str = field(default_factory=utc_now_iso)
    results: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "correlationId": self.correlation_id,
            "timestamp": self.timestamp,
        }
        if self.success:
            data["results"] = self.results
        else:
            data["error"] = self.error
        return data
