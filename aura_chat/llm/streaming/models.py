"""
Streaming dataclasses for decoding the relayed event stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

DONE_SENTINEL = "[DONE]"


class SSEEventType(Enum):
    """Server-Sent Event types."""
    CHUNK = "chunk"
    COMPLETION = "completion"
    ERROR = "error"


class ConsumerState(Enum):
    """Lifecycle of a single consumer exchange."""
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ConsumerState.COMPLETED, ConsumerState.FAILED)


@dataclass(frozen=True)
class RawSSEChunk:
    """One decoded ``data:`` line."""
    event_type: SSEEventType
    data: dict[str, Any] | None
    raw_data: str
    error: str | None = None


@dataclass(frozen=True)
class StreamOutcome:
    """Final result of a consumer exchange."""
    state: ConsumerState
    reply: str
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is ConsumerState.COMPLETED
