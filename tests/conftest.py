"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are seeded here before any app import so that
settings resolve the same way on every machine.
"""

import json
import os
from functools import partial
from typing import Any

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("GEMINI_MODEL", "gemini-2.5-flash-preview-05-20")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest
from fastapi.testclient import TestClient

from app.adapters.llm.gemini_client import GeminiClient
from app.core.rate_limit import get_rate_limiter

SAMPLE_REPLY = "**Diagnosis:** Leaky valve\n**Cause:** worn gasket\n**Solution:** replace gasket"


class FakeGeminiUpstream:
    """Stand-in for the Gemini REST API, served through httpx.MockTransport.

    Attributes:
        status_code: Status returned for every call.
        body: JSON body returned; defaults to a single candidate with ``reply_text``.
        reply_text: Text of the first candidate when ``body`` is not set.
        error: Exception raised instead of answering (simulates network failure).
        requests: Every request received, in order.
    """

    def __init__(self) -> None:
        self.status_code = 200
        self.body: Any = None
        self.reply_text = SAMPLE_REPLY
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        body = self.body
        if body is None:
            body = {"candidates": [{"content": {"parts": [{"text": self.reply_text}]}}]}
        return httpx.Response(self.status_code, json=body)

    @property
    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def gemini_upstream(monkeypatch: pytest.MonkeyPatch) -> FakeGeminiUpstream:
    """Route every GeminiClient built by the factory to a fake upstream."""
    upstream = FakeGeminiUpstream()
    transport = httpx.MockTransport(upstream.handle)
    monkeypatch.setattr(
        "app.adapters.llm.factory.GeminiClient",
        partial(GeminiClient, transport=transport),
    )
    return upstream


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Start every test with an empty rate limit log."""
    get_rate_limiter().reset()


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client."""
    from app.main import app

    return TestClient(app)
