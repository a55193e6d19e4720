"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
    set_request_id,
)


@pytest.fixture
def capture() -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_api_keys(capture) -> None:
    logger, stream = capture

    logger.info(
        "test_event",
        extra={
            "api_key": "AIza-secret-123",
            "key": "another-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "AIza-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_prompt_and_image(capture) -> None:
    logger, stream = capture

    logger.info(
        "diagnosis_event",
        extra={
            "prompt": "My neighbour's dog bit me",
            "base64_image_data": "iVBORw0KGgoAAAANSUhEUg",
            "reply_chars": 120,
        },
    )

    output = stream.getvalue()

    assert "neighbour" not in output
    assert "iVBORw0KGgo" not in output
    assert "reply_chars" in output


def test_sensitive_filter_allows_safe_fields(capture) -> None:
    logger, stream = capture

    logger.info(
        "safe_event",
        extra={
            "request_id": "req-123",
            "request_path": "/gemini",
            "status_code": 200,
            "duration_ms": 150.5,
        },
    )

    output = stream.getvalue()

    assert "req-123" in output
    assert "/gemini" in output
    assert "200" in output
    assert "[REDACTED]" not in output


def test_sensitive_filter_redacts_nested_dicts(capture) -> None:
    logger, stream = capture

    logger.info(
        "nested_event",
        extra={
            "headers": {
                "CF-Connecting-IP": "203.0.113.9",
                "user-agent": "pytest",
            },
            "error_body": {"error": {"code": 400, "status": "INVALID_ARGUMENT"}},
        },
    )

    output = stream.getvalue()

    assert "203.0.113.9" not in output
    assert "pytest" in output
    assert "INVALID_ARGUMENT" in output


def test_request_id_from_context_is_attached(capture) -> None:
    logger, stream = capture

    set_request_id("ctx-req-7")
    try:
        logger.info("with_context")
    finally:
        clear_request_id()

    record = json.loads(stream.getvalue())
    assert record["request_id"] == "ctx-req-7"
    assert record["message"] == "with_context"
    assert record["level"] == "info"


def test_hash_identifier_is_stable_and_short() -> None:
    assert hash_identifier("203.0.113.9") == hash_identifier("203.0.113.9")
    assert hash_identifier("203.0.113.9") != hash_identifier("203.0.113.10")
    assert len(hash_identifier("203.0.113.9")) == 16


def test_sensitive_filter_redacts_inside_lists(capture) -> None:
    logger, stream = capture

    logger.info("list_event", extra={"parts": [{"text": "private words"}, {"mimeType": "image/png"}]})

    record = json.loads(stream.getvalue())
    assert record["parts"] == [{"text": "[REDACTED]"}, {"mimeType": "image/png"}]


def test_exception_is_rendered_in_json(capture) -> None:
    logger, stream = capture

    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.exception("failed_event")

    record = json.loads(stream.getvalue())
    assert record["level"] == "error"
    assert "RuntimeError: boom" in record["exc_info"]
