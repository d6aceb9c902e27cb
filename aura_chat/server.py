"""
HTTP surface of the chat relay.

POST streams the upstream completion back as ``text/event-stream``. Failures
come back as ``{"error": "..."}`` with 429, 402 or 500. OPTIONS answers
browser preflight with permissive CORS headers.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

from aura_chat.config import Configuration
from aura_chat.llm.exceptions import RelayError
from aura_chat.llm.models import ChatRequest
from aura_chat.logging_utils import REQUEST_PARSE_ERRORS, RelayErrorHandler
from aura_chat.relay import StreamRelay

logger = structlog.get_logger(__name__)

ALLOWED_METHODS = ["POST", "OPTIONS"]


def build_cors_headers(cors_config: dict[str, Any]) -> dict[str, str]:
    """Headers attached to preflight and error responses."""
    headers = {
        "Access-Control-Allow-Headers": ", ".join(cors_config["allow_headers"]),
        "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
    }
    if "*" in cors_config["allow_origins"]:
        headers["Access-Control-Allow-Origin"] = "*"
    return headers


def create_app(
    configuration: Configuration | None = None,
    relay: StreamRelay | None = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        configuration: Loaded configuration, read from config.yaml if omitted
        relay: Relay to serve, built from the configuration if omitted

    Returns:
        FastAPI application exposing the chat endpoint
    """
    configuration = configuration or Configuration()
    server_config = configuration.get_server_config()
    cors_config = configuration.get_cors_config()
    relay = relay or StreamRelay(configuration.get_relay_settings())
    cors_headers = build_cors_headers(cors_config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await relay.close()

    app = FastAPI(title="Aura Chat Relay", lifespan=lifespan)
    app.state.relay = relay
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config["allow_origins"],
        allow_methods=ALLOWED_METHODS,
        allow_headers=cors_config["allow_headers"],
    )

    @app.exception_handler(RelayError)
    async def relay_error_handler(_request: Request, exc: RelayError) -> JSONResponse:
        return JSONResponse(
            exc.to_payload(), status_code=exc.status_code, headers=cors_headers
        )

    async def preflight() -> Response:
        return Response(status_code=200, headers=cors_headers)

    async def chat(request: Request) -> StreamingResponse:
        try:
            chat_request = ChatRequest.model_validate(await request.json())
        except REQUEST_PARSE_ERRORS as e:
            raise RelayErrorHandler.create_relay_error(
                e, "parse_chat_request"
            ) from e

        log = logger.bind(
            turns=len(chat_request.turns),
            has_context=chat_request.context is not None,
        )
        try:
            upstream = await relay.open_stream(chat_request)
        except RelayError as e:
            log.warning(
                "Chat request rejected",
                error_category=e.category.value,
                upstream_status=e.upstream_status,
            )
            raise
        except Exception as e:
            raise RelayErrorHandler.create_relay_error(e, "relay_chat") from e

        log.info("Relaying upstream stream")
        return StreamingResponse(
            relay.relay_bytes(upstream),
            media_type="text/event-stream",
            headers=cors_headers,
        )

    app.add_api_route(server_config["path"], preflight, methods=["OPTIONS"])
    app.add_api_route(server_config["path"], chat, methods=["POST"])

    return app
