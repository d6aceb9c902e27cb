"""
Stream relay between chat clients and the upstream completion provider.

The relay prepends the companion's system instruction to the caller's turns,
opens a streaming completion upstream and hands the live response back for
pass-through. Upstream failures are translated into user-safe relay errors
before any byte is streamed.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import structlog

from aura_chat.llm.exceptions import ConfigurationError, error_for_status
from aura_chat.llm.models import ChatRequest, HttpClientSettings, RelaySettings
from aura_chat.llm.persona import Persona, system_turn
from aura_chat.logging_utils import RelayErrorHandler, operation_context

logger = structlog.get_logger(__name__)

MAX_LOGGED_ERROR_BODY = 2000


def build_http_client(settings: HttpClientSettings) -> httpx.AsyncClient:
    """Create the pooled client shared by all relayed requests."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=settings.connect_timeout,
            read=settings.read_timeout,
            write=settings.write_timeout,
            pool=settings.pool_timeout,
        ),
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_keepalive,
            keepalive_expiry=settings.keepalive_expiry,
        ),
    )


class StreamRelay:
    """
    Forwards chat requests upstream with streaming enabled.

    Holds no per-request state: the pooled HTTP client is the only thing
    shared between concurrent requests.
    """

    def __init__(
        self,
        settings: RelaySettings,
        client: httpx.AsyncClient | None = None,
        api_key_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self.settings = settings
        self.persona = Persona(companion_name=settings.companion_name)
        self._api_key_provider = api_key_provider or self._api_key_from_env
        self._owns_client = client is None
        self.client: httpx.AsyncClient = client or build_http_client(
            settings.http_client
        )

    def _api_key_from_env(self) -> str | None:
        return os.getenv(self.settings.api_key_env) or None

    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        """Upstream request body: system turn first, then the caller's turns."""
        messages = [
            system_turn(request.display_name, request.context, self.persona),
            *(turn.to_message() for turn in request.turns),
        ]
        return {
            "model": self.settings.model,
            "messages": messages,
            "stream": True,
        }

    async def open_stream(self, request: ChatRequest) -> httpx.Response:
        """
        Open the upstream stream and return the live response.

        The caller owns the returned response and must consume it through
        ``relay_bytes`` or close it.

        Raises:
            ConfigurationError: If the upstream credential is missing. Nothing
                is sent upstream in that case.
            RateLimitedError: If upstream answers 429.
            UpstreamUnavailableError: If upstream answers 402.
            UpstreamFailureError: For any other failure reaching upstream.
        """
        api_key = self._api_key_provider()
        if not api_key:
            raise ConfigurationError(f"{self.settings.api_key_env} is not configured")

        upstream_request = self.client.build_request(
            "POST",
            self.settings.url,
            json=self.build_payload(request),
            headers={"Authorization": f"Bearer {api_key}"},
        )

        context = {"model": self.settings.model, "turns": len(request.turns)}
        try:
            async with operation_context("upstream_chat_completion", **context):
                response = await self.client.send(upstream_request, stream=True)
        except httpx.HTTPError as e:
            raise RelayErrorHandler.create_relay_error(
                e, "upstream_chat_completion", context
            ) from e

        if not response.is_success:
            body = await self._read_error_body(response)
            logger.error(
                "AI gateway error",
                status_code=response.status_code,
                body=body,
            )
            raise error_for_status(response.status_code)

        return response

    async def _read_error_body(self, response: httpx.Response) -> str:
        try:
            body = await response.aread()
            return body.decode("utf-8", errors="replace")[:MAX_LOGGED_ERROR_BODY]
        except httpx.HTTPError as e:
            return f"<unreadable body: {e}>"
        finally:
            await response.aclose()

    async def relay_bytes(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """
        Pass the upstream body through unchanged, closing it when done.

        Headers are already sent by the time this runs, so an upstream failure
        is re-raised to abort the downstream body. It must not look like a
        natural end. A downstream disconnect is a normal way for the stream
        to end.
        """
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.warning(
                "Upstream stream ended early",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise
        except (asyncio.CancelledError, GeneratorExit):
            logger.debug("Client disconnected, closing upstream stream")
            raise
        finally:
            await response.aclose()

    async def close(self) -> None:
        """Close the HTTP client if this relay created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> StreamRelay:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
