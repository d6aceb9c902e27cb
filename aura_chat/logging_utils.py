"""
Centralized logging and error handling utilities for the chat relay.

This module provides helpers to standardize logging and error reporting
across the relay and the consumer.

Features:
- Structured logging with contextual information
- Classification of unexpected exceptions into relay error categories,
  where only malformed requests keep their own message
- Operation timing for upstream calls
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any

import structlog
from pydantic import ValidationError

from aura_chat.llm.exceptions import (
    ErrorCategory,
    InvalidRequestError,
    RelayError,
    UpstreamFailureError,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Raised while reading and validating a chat request body
REQUEST_PARSE_ERRORS = (ValidationError, json.JSONDecodeError, UnicodeDecodeError)


def setup_logging(logging_config: dict[str, Any] | None = None) -> None:
    """Apply the configured log level to the stdlib root logger."""
    level_name = str((logging_config or {}).get("level", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level '{level_name}'")

    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)


class RelayErrorHandler:
    """Centralized relay error handling with structured logging."""

    @staticmethod
    def classify_error(error: Exception) -> tuple[int, ErrorCategory]:
        """
        Classify an error and return its HTTP status and category.

        Args:
            error: The exception to classify

        Returns:
            Tuple of (http_status, error_category)
        """
        if isinstance(error, RelayError):
            return error.status_code, error.category
        if isinstance(error, REQUEST_PARSE_ERRORS):
            return 500, ErrorCategory.INVALID_REQUEST
        return 500, ErrorCategory.UPSTREAM_FAILURE

    @staticmethod
    def create_relay_error(
        error: Exception,
        operation: str,
        context: dict[str, Any] | None = None,
    ) -> RelayError:
        """
        Wrap an unexpected exception into a RelayError and log it.

        Malformed requests keep a description of what was wrong. Anything
        else becomes a generic upstream failure so no internal detail reaches
        the caller.

        Args:
            error: Original exception
            operation: Description of the operation that failed
            context: Additional context for logging

        Returns:
            RelayError safe to return to the caller
        """
        if isinstance(error, RelayError):
            return error

        status_code, category = RelayErrorHandler.classify_error(error)

        logger.error(
            "Operation failed",
            operation=operation,
            error_type=type(error).__name__,
            error_category=category.value,
            status_code=status_code,
            error_message=str(error),
            **(context or {}),
        )

        if category is ErrorCategory.INVALID_REQUEST:
            return InvalidRequestError(describe_error(error))
        return UpstreamFailureError()


def describe_error(error: Exception) -> str:
    """Short human-readable description of a local exception."""
    if isinstance(error, ValidationError):
        problems = [
            f"{'.'.join(str(part) for part in item['loc']) or 'body'}: {item['msg']}"
            for item in error.errors()
        ]
        return "Invalid chat request: " + "; ".join(problems)
    if isinstance(error, json.JSONDecodeError | UnicodeDecodeError):
        return "Invalid chat request: body is not valid JSON"
    return str(error) or type(error).__name__


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


@asynccontextmanager
async def operation_context(operation: str, **context: Any):
    """
    Time an upstream operation and log how it ended.

    Yields a logger bound to ``operation`` and ``context``. Failures are
    logged with their duration and re-raised.
    """
    bound = logger.bind(operation=operation, **context)
    started = time.perf_counter()
    bound.debug("Operation started")
    try:
        yield bound
    except Exception as e:
        bound.warning(
            "Operation failed",
            error_type=type(e).__name__,
            error_message=str(e),
            duration_ms=_elapsed_ms(started),
        )
        raise
    bound.info("Operation completed", duration_ms=_elapsed_ms(started))
