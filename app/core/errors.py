"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional to keep shapes consistent across the codebase without
    forcing every error to carry every field.
    """

    code: str
    message: str
    hint: str
    max_value: int
    actual_value: int
    http_status: int
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    model: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message, returned to the caller.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when the request payload is malformed or incomplete."""


class PayloadTooLargeAppError(AppError):
    """Raised when the request payload exceeds the configured size bound."""


class ConfigurationAppError(AppError):
    """Raised when the server is missing required configuration."""


class LLMAppError(AppError):
    """Raised when LLM provider/client operations fail unexpectedly."""


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exceeds its request quota.

    Attributes:
        headers: Optional throttling headers (Retry-After, X-RateLimit-*).
    """

    headers: dict[str, str] | None = None


@dataclass
class UpstreamAppError(AppError):
    """Raised when the upstream API answers with a non-success status.

    Attributes:
        status_code: Status returned by the upstream.
        body: Decoded JSON error body, passed through to the caller verbatim.
    """

    status_code: int = 502
    body: Any = None
