"""
Core chat models shared by the relay and the consumer.

This module provides:
- Message roles
- Conversation turns and the relay request body
- Relay settings resolved from configuration
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(Enum):
    """OpenAI-compatible message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(BaseModel):
    """One message in a conversation, as sent by the client."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ChatRequest(BaseModel):
    """
    Relay request body.

    Wire shape is ``{"messages": [...], "userName": "...", "context": "..."}``.
    ``context`` carries conversation memory and is never sent as a turn.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    turns: list[ConversationTurn] = Field(alias="messages", min_length=1)
    display_name: str = Field(alias="userName")
    context: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the wire aliases, dropping an absent context."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class HttpClientSettings:
    """Connection pool and timeout settings for the upstream client."""
    max_connections: int = 100
    max_keepalive: int = 20
    keepalive_expiry: float = 5.0
    connect_timeout: float | None = 10.0
    read_timeout: float | None = None
    write_timeout: float | None = 10.0
    pool_timeout: float | None = None


@dataclass(frozen=True)
class RelaySettings:
    """Everything the relay needs to reach the upstream provider."""
    url: str
    model: str
    api_key_env: str
    companion_name: str = "Aura"
    http_client: HttpClientSettings = field(default_factory=HttpClientSettings)
