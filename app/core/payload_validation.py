"""Request body validation for the diagnosis endpoint.

Checks run in a fixed order so each failure maps to exactly one status:
malformed JSON (400), oversized payload (413), missing prompt (400).
"""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request
from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import PayloadTooLargeAppError, ValidationAppError
from app.schemas.diagnosis import DiagnosisRequest

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON in request body."
PAYLOAD_TOO_LARGE_MESSAGE = "Request payload is too large."
PROMPT_REQUIRED_MESSAGE = "Prompt is required."
INVALID_PAYLOAD_MESSAGE = "Invalid request payload."


async def read_body_limited(request: Request) -> bytes:
    """Read the request body in chunks enforcing the raw size cap.

    Uses Content-Length if available, falls back to chunked reading with
    enforcement so an oversized stream is never fully buffered.

    Raises:
        PayloadTooLargeAppError: If the body exceeds ``max_raw_body_bytes``.
    """
    max_bytes = settings.app.max_raw_body_bytes

    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        logger.warning(
            "payload_validation.rejected_by_header",
            extra={"content_length": int(content_length), "max_bytes": max_bytes},
        )
        raise PayloadTooLargeAppError(
            code="payload_too_large",
            message=PAYLOAD_TOO_LARGE_MESSAGE,
            details={"max_value": max_bytes, "actual_value": int(content_length)},
        )

    size = 0
    chunks: list[bytes] = []

    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "payload_validation.rejected_by_chunked_read",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise PayloadTooLargeAppError(
                code="payload_too_large",
                message=PAYLOAD_TOO_LARGE_MESSAGE,
                details={"max_value": max_bytes, "actual_value": size},
            )
        chunks.append(chunk)

    return b"".join(chunks)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_json_body(raw: bytes) -> Any:
    """Decode a JSON document, rejecting NaN/Infinity like strict parsers do.

    Raises:
        ValidationAppError: If the body is not valid JSON.
    """
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        raise ValidationAppError(code="invalid_json", message=INVALID_JSON_MESSAGE) from exc


def serialized_size(body: Any) -> int:
    """Size in bytes of the compact JSON serialization of ``body``.

    Lone surrogates from escaped input (``"\\ud83d"``) are counted as their
    three-byte encoding instead of failing the encode.
    """
    text = json.dumps(body, separators=(",", ":"), ensure_ascii=False)
    return len(text.encode("utf-8", "surrogatepass"))


def validate_diagnosis_payload(body: Any) -> DiagnosisRequest:
    """Apply the size bound and required-field checks to a parsed body.

    Args:
        body: Parsed JSON value.

    Returns:
        Validated DiagnosisRequest with a non-empty prompt.

    Raises:
        PayloadTooLargeAppError: If the serialized body exceeds the bound.
        ValidationAppError: If the prompt is missing/empty or fields have the wrong type.
    """
    max_bytes = settings.app.max_payload_bytes
    size = serialized_size(body)
    if size > max_bytes:
        raise PayloadTooLargeAppError(
            code="payload_too_large",
            message=PAYLOAD_TOO_LARGE_MESSAGE,
            details={"max_value": max_bytes, "actual_value": size},
        )

    if not isinstance(body, dict):
        raise ValidationAppError(code="prompt_required", message=PROMPT_REQUIRED_MESSAGE)

    try:
        payload = DiagnosisRequest.model_validate(body)
    except ValidationError as exc:
        raise ValidationAppError(
            code="invalid_payload",
            message=INVALID_PAYLOAD_MESSAGE,
            details={"context": {"errors": exc.error_count()}},
        ) from exc

    if not payload.prompt:
        raise ValidationAppError(code="prompt_required", message=PROMPT_REQUIRED_MESSAGE)

    return payload


async def read_diagnosis_payload(request: Request) -> DiagnosisRequest:
    """Read, parse and validate the diagnosis request body."""
    raw = await read_body_limited(request)
    return validate_diagnosis_payload(parse_json_body(raw))
