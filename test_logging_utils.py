#!/usr/bin/env python3
"""
Test script for logging utilities.

This validates that the centralized logging and error handling works correctly.
"""

import json
import logging

import httpx
import pytest
from pydantic import ValidationError

from aura_chat.llm.exceptions import (
    UPSTREAM_FAILURE_MESSAGE,
    ConfigurationError,
    ConnectionFailureError,
    ErrorCategory,
    InvalidRequestError,
    RateLimitedError,
    UpstreamFailureError,
    UpstreamUnavailableError,
    error_for_status,
)
from aura_chat.llm.models import ChatRequest
from aura_chat.logging_utils import (
    RelayErrorHandler,
    describe_error,
    operation_context,
    setup_logging,
)


def invalid_request_error() -> ValidationError:
    try:
        ChatRequest.model_validate({"messages": []})
    except ValidationError as e:
        return e
    raise AssertionError("request should not validate")


class TestRelayErrorHandler:
    """Test the RelayErrorHandler class."""

    @pytest.mark.parametrize(
        "error, status, category",
        [
            (RateLimitedError(), 429, ErrorCategory.RATE_LIMITED),
            (UpstreamUnavailableError(), 402, ErrorCategory.UPSTREAM_UNAVAILABLE),
            (ConfigurationError("missing key"), 500, ErrorCategory.CONFIGURATION),
            (ConnectionFailureError(), 500, ErrorCategory.CONNECTION_FAILURE),
        ],
    )
    def test_classify_relay_errors(self, error, status, category):
        assert RelayErrorHandler.classify_error(error) == (status, category)

    def test_classify_validation_error(self):
        code, category = RelayErrorHandler.classify_error(invalid_request_error())
        assert code == 500
        assert category is ErrorCategory.INVALID_REQUEST

    def test_classify_json_decode_error(self):
        with pytest.raises(json.JSONDecodeError) as exc_info:
            json.loads("not json")
        assert RelayErrorHandler.classify_error(exc_info.value) == (
            500, ErrorCategory.INVALID_REQUEST,
        )

    @pytest.mark.parametrize(
        "error", [ValueError("pool state corrupt"), TypeError("NoneType in relay")]
    )
    def test_internal_errors_are_generic_failures(self, error):
        assert RelayErrorHandler.classify_error(error) == (
            500, ErrorCategory.UPSTREAM_FAILURE,
        )
        wrapped = RelayErrorHandler.create_relay_error(error, "relay_chat")
        assert isinstance(wrapped, UpstreamFailureError)
        assert wrapped.to_payload() == {"error": UPSTREAM_FAILURE_MESSAGE}

    def test_classify_unknown_error(self):
        code, category = RelayErrorHandler.classify_error(httpx.ConnectError("refused"))
        assert code == 500
        assert category is ErrorCategory.UPSTREAM_FAILURE

    def test_relay_errors_pass_through(self):
        original = RateLimitedError(upstream_status=429)
        assert RelayErrorHandler.create_relay_error(original, "chat") is original

    def test_transport_errors_hide_details(self):
        error = RelayErrorHandler.create_relay_error(
            httpx.ConnectError("10.0.0.3:443 refused"), "chat", {"model": "m"}
        )
        assert isinstance(error, UpstreamFailureError)
        assert error.message == UPSTREAM_FAILURE_MESSAGE
        assert "10.0.0.3" not in error.to_payload()["error"]

    def test_request_errors_keep_their_message(self):
        error = RelayErrorHandler.create_relay_error(invalid_request_error(), "parse")
        assert isinstance(error, InvalidRequestError)
        assert error.message.startswith("Invalid chat request: ")
        assert "messages" in error.message


class TestErrorForStatus:
    """Upstream status translation."""

    @pytest.mark.parametrize(
        "status, error_type",
        [
            (429, RateLimitedError),
            (402, UpstreamUnavailableError),
            (401, UpstreamFailureError),
            (500, UpstreamFailureError),
        ],
    )
    def test_mapping(self, status, error_type):
        error = error_for_status(status)
        assert type(error) is error_type
        assert error.upstream_status == status
        assert error.to_payload() == {"error": error.message}


def test_describe_error():
    assert describe_error(ValueError("bad port")) == "bad port"
    assert describe_error(json.JSONDecodeError("Expecting value", "x", 0)) == (
        "Invalid chat request: body is not valid JSON"
    )
    assert describe_error(KeyError()) == "KeyError"


@pytest.mark.asyncio
async def test_operation_context_success():
    async with operation_context("upstream_chat", model="m") as op_logger:
        assert op_logger is not None


@pytest.mark.asyncio
async def test_operation_context_reraises():
    with pytest.raises(RuntimeError, match="boom"):
        async with operation_context("upstream_chat"):
            raise RuntimeError("boom")


def test_setup_logging_level():
    setup_logging({"level": "debug"})
    assert logging.getLogger().level == logging.DEBUG

    setup_logging(None)
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ValueError, match="Unknown logging level"):
        setup_logging({"level": "chatty"})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
