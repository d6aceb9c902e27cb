"""
Chat models, persona rendering and error taxonomy.

This package provides:
- Conversation turn and relay request models
- The companion persona and system instruction rendering
- The relay error taxonomy
- SSE decoding for relayed streams
"""

from __future__ import annotations

from .exceptions import (
    ConfigurationError,
    ConnectionFailureError,
    ErrorCategory,
    InvalidRequestError,
    RateLimitedError,
    RelayError,
    UpstreamFailureError,
    UpstreamUnavailableError,
    UsageLimitError,
)
from .models import (
    ChatRequest,
    ConversationTurn,
    HttpClientSettings,
    MessageRole,
    RelaySettings,
)
from .persona import DEFAULT_PERSONA, Persona, build_system_instruction

__all__ = [
    "DEFAULT_PERSONA",
    "ChatRequest",
    "ConfigurationError",
    "ConnectionFailureError",
    "ConversationTurn",
    "ErrorCategory",
    "HttpClientSettings",
    "InvalidRequestError",
    "MessageRole",
    "Persona",
    "RateLimitedError",
    "RelayError",
    "RelaySettings",
    "UpstreamFailureError",
    "UpstreamUnavailableError",
    "UsageLimitError",
    "build_system_instruction",
]
