"""
Streaming functionality for the chat consumer.

This package contains:
- SSE line decoding with a carry-over buffer
- Delta extraction from completion chunks
- Consumer state and outcome types
"""

from .models import (
    DONE_SENTINEL,
    ConsumerState,
    RawSSEChunk,
    SSEEventType,
    StreamOutcome,
)
from .parser import SSEDecoder, extract_delta, iter_fragments

__all__ = [
    "DONE_SENTINEL",
    "ConsumerState",
    "RawSSEChunk",
    "SSEDecoder",
    "SSEEventType",
    "StreamOutcome",
    "extract_delta",
    "iter_fragments",
]
