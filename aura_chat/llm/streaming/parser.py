"""
Incremental SSE decoder for OpenAI-compatible chat completion streams.

Network reads do not line up with event boundaries, so the decoder keeps a
carry-over buffer and only parses complete lines. A ``data: [DONE]`` line ends
the stream; payloads that fail to decode are skipped and the stream continues.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

import structlog

from .models import DONE_SENTINEL, RawSSEChunk, SSEEventType

logger = structlog.get_logger(__name__)

DATA_FIELD = "data:"


class SSEDecoder:
    """Line-oriented SSE state machine with a carry-over buffer."""

    def __init__(self) -> None:
        self._buffer = ""
        self._done = False
        self.stats = {
            'total_chunks': 0,
            'error_chunks': 0,
        }

    @property
    def done(self) -> bool:
        """True once the sentinel has been seen or the input was finished."""
        return self._done

    @property
    def pending(self) -> str:
        """Trailing data not yet terminated by a newline."""
        return self._buffer

    def feed(self, text: str) -> list[RawSSEChunk]:
        """
        Add newly received text and return the events it completes.

        Anything after the last newline stays buffered until the next call.
        Input arriving after the sentinel is ignored.
        """
        if self._done:
            return []

        self._buffer += text
        chunks: list[RawSSEChunk] = []

        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            chunk = self._parse_line(line)
            if chunk is None:
                continue

            chunks.append(chunk)
            if chunk.event_type == SSEEventType.COMPLETION:
                self._done = True
                self._buffer = ""
                break

        return chunks

    def finish(self) -> list[RawSSEChunk]:
        """Flush the buffer at end of input, treating it as a final line."""
        if self._done:
            return []

        remainder, self._buffer = self._buffer, ""
        self._done = True
        chunk = self._parse_line(remainder) if remainder else None
        return [chunk] if chunk else []

    def _parse_line(self, raw_line: str) -> RawSSEChunk | None:
        line = raw_line.rstrip("\r")

        # Blank lines separate events, ":" lines are comments/keepalives,
        # and event:/id:/retry: fields carry nothing we use.
        if not line.startswith(DATA_FIELD):
            return None

        data_content = line[len(DATA_FIELD):]
        if data_content.startswith(" "):
            data_content = data_content[1:]

        if data_content.strip() == DONE_SENTINEL:
            return RawSSEChunk(
                event_type=SSEEventType.COMPLETION,
                data=None,
                raw_data=DONE_SENTINEL,
            )

        self.stats['total_chunks'] += 1
        try:
            parsed = json.loads(data_content)
        except json.JSONDecodeError as e:
            self.stats['error_chunks'] += 1
            return RawSSEChunk(
                event_type=SSEEventType.ERROR,
                data=None,
                raw_data=data_content,
                error=f"JSON decode error: {e}",
            )

        if not isinstance(parsed, dict):
            self.stats['error_chunks'] += 1
            return RawSSEChunk(
                event_type=SSEEventType.ERROR,
                data=None,
                raw_data=data_content,
                error=f"Expected JSON object, got {type(parsed).__name__}",
            )

        return RawSSEChunk(
            event_type=SSEEventType.CHUNK,
            data=parsed,
            raw_data=data_content,
        )

    def get_stats(self) -> dict[str, int]:
        """Get decoding statistics for monitoring."""
        return self.stats.copy()


def extract_delta(data: dict[str, Any]) -> str | None:
    """Return ``choices[0].delta.content`` when it is a non-empty string."""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None

    choice = choices[0]
    if not isinstance(choice, dict):
        return None

    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return None

    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def _fragments_from(chunks: list[RawSSEChunk]) -> list[str]:
    fragments = []
    for chunk in chunks:
        if chunk.event_type == SSEEventType.ERROR:
            logger.debug(
                "Skipping malformed stream line",
                error=chunk.error,
                raw_data=chunk.raw_data[:200],
            )
            continue
        if chunk.event_type == SSEEventType.CHUNK and chunk.data is not None:
            if content := extract_delta(chunk.data):
                fragments.append(content)
    return fragments


async def iter_fragments(
    text_chunks: AsyncIterable[str],
    decoder: SSEDecoder | None = None,
) -> AsyncIterator[str]:
    """
    Lazily turn incoming text chunks into reply fragments.

    Ends at the sentinel or when ``text_chunks`` is exhausted. Errors raised by
    the underlying iterator propagate to the caller.
    """
    decoder = decoder or SSEDecoder()

    async for text in text_chunks:
        for fragment in _fragments_from(decoder.feed(text)):
            yield fragment
        if decoder.done:
            return

    for fragment in _fragments_from(decoder.finish()):
        yield fragment
