"""
Client-side consumer for the chat relay stream.

A consumer drives exactly one request/response cycle and reports it through
three callbacks: ``on_fragment`` for each piece of the reply, then either
``on_complete`` or ``on_error``, never both. Failures are reported, not
raised.
"""

from __future__ import annotations

import inspect
import json
from collections.abc import Callable, Sequence
from contextlib import aclosing
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from aura_chat.llm.exceptions import CONNECTION_FAILURE_MESSAGE
from aura_chat.llm.models import ChatRequest, ConversationTurn
from aura_chat.llm.streaming import (
    ConsumerState,
    SSEDecoder,
    StreamOutcome,
    iter_fragments,
)
from aura_chat.logging_utils import describe_error

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "I'm having trouble responding right now. Please try again."
ABORTED_MESSAGE = "Request aborted"

FragmentCallback = Callable[[str], Any]
CompleteCallback = Callable[[], Any]
ErrorCallback = Callable[[str], Any]


async def _invoke(callback: Callable[..., Any], *args: Any) -> None:
    """Call a plain or async callback."""
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class StreamConsumer:
    """
    One exchange with the relay.

    State moves IDLE -> REQUESTING -> STREAMING -> COMPLETED, or ends in
    FAILED from REQUESTING or STREAMING. An instance cannot be reused.
    """

    def __init__(
        self,
        relay_url: str,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.relay_url = relay_url
        self.headers = headers or {}
        self._client = client
        self.state = ConsumerState.IDLE
        self.decoder = SSEDecoder()
        self._fragments: list[str] = []
        self._error: str | None = None
        self._response: httpx.Response | None = None
        self._aborted = False

    @property
    def reply(self) -> str:
        """Reply text received so far."""
        return "".join(self._fragments)

    @property
    def aborted(self) -> bool:
        return self._aborted

    async def abort(self) -> None:
        """
        Abandon the exchange. No callback fires afterwards.

        Closing the live response makes the read loop end promptly. Aborting
        a finished exchange does nothing.
        """
        if self.state.is_terminal:
            return
        self._aborted = True
        if self._response is not None:
            await self._response.aclose()

    async def stream_chat(
        self,
        turns: Sequence[ConversationTurn | dict[str, str]],
        display_name: str,
        on_fragment: FragmentCallback,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
        context: str | None = None,
    ) -> StreamOutcome:
        """
        Send the conversation and stream the reply through the callbacks.

        Args:
            turns: Conversation so far, oldest first
            display_name: Name the companion should use for the user
            on_fragment: Called with each reply fragment in arrival order
            on_complete: Called once when the reply finished
            on_error: Called once with a human-readable message on failure
            context: Optional conversation memory for the companion

        Returns:
            The final outcome, mirroring what the callbacks reported
        """
        if self.state is not ConsumerState.IDLE:
            raise RuntimeError("StreamConsumer instances handle a single exchange")

        self.state = ConsumerState.REQUESTING
        try:
            request = ChatRequest(
                turns=list(turns), display_name=display_name, context=context
            )
        except ValidationError as e:
            return await self._fail(describe_error(e), on_error)

        client = self._client or httpx.AsyncClient(timeout=None)
        try:
            return await self._exchange(
                client, request, on_fragment, on_complete, on_error
            )
        finally:
            self._response = None
            if self._client is None:
                await client.aclose()

    async def _exchange(
        self,
        client: httpx.AsyncClient,
        request: ChatRequest,
        on_fragment: FragmentCallback,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
    ) -> StreamOutcome:
        try:
            async with client.stream(
                "POST", self.relay_url, json=request.to_wire(), headers=self.headers
            ) as response:
                self._response = response
                if self._aborted:
                    return self._abandon()

                if not response.is_success:
                    message = await self._error_message(response)
                    logger.warning(
                        "Relay rejected chat request",
                        status_code=response.status_code,
                        error_message=message,
                    )
                    return await self._fail(message, on_error)

                self.state = ConsumerState.STREAMING
                async with aclosing(
                    iter_fragments(response.aiter_text(), self.decoder)
                ) as fragments:
                    async for fragment in fragments:
                        if self._aborted:
                            return self._abandon()
                        self._fragments.append(fragment)
                        await _invoke(on_fragment, fragment)

        except (httpx.HTTPError, httpx.StreamError) as e:
            if self._aborted:
                return self._abandon()
            logger.warning(
                "Chat stream failed",
                state=self.state.value,
                error_type=type(e).__name__,
                error_message=str(e),
                received_chars=len(self.reply),
            )
            return await self._fail(CONNECTION_FAILURE_MESSAGE, on_error)

        if self._aborted:
            return self._abandon()

        self.state = ConsumerState.COMPLETED
        logger.debug(
            "Chat stream completed",
            fragments=len(self._fragments),
            **self.decoder.get_stats(),
        )
        await _invoke(on_complete)
        return self._outcome()

    async def _error_message(self, response: httpx.Response) -> str:
        """Server-provided ``error`` field, or the generic message."""
        try:
            payload = json.loads(await response.aread())
        except (httpx.HTTPError, httpx.StreamError, ValueError):
            return GENERIC_ERROR_MESSAGE

        if isinstance(payload, dict):
            message = payload.get("error")
            if isinstance(message, str) and message.strip():
                return message
        return GENERIC_ERROR_MESSAGE

    async def _fail(self, message: str, on_error: ErrorCallback) -> StreamOutcome:
        if self._aborted:
            return self._abandon()
        self.state = ConsumerState.FAILED
        self._error = message
        await _invoke(on_error, message)
        return self._outcome()

    def _abandon(self) -> StreamOutcome:
        self.state = ConsumerState.FAILED
        self._error = ABORTED_MESSAGE
        return self._outcome()

    def _outcome(self) -> StreamOutcome:
        return StreamOutcome(state=self.state, reply=self.reply, error=self._error)


async def stream_chat(
    relay_url: str,
    turns: Sequence[ConversationTurn | dict[str, str]],
    display_name: str,
    on_fragment: FragmentCallback,
    on_complete: CompleteCallback,
    on_error: ErrorCallback,
    *,
    context: str | None = None,
    client: httpx.AsyncClient | None = None,
    headers: dict[str, str] | None = None,
) -> StreamOutcome:
    """Run a single exchange with a fresh consumer."""
    consumer = StreamConsumer(relay_url, client=client, headers=headers)
    return await consumer.stream_chat(
        turns, display_name, on_fragment, on_complete, on_error, context=context
    )
