from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.exception_handlers import setup_exception_handlers
from app.core.middleware import request_id_middleware


@pytest.fixture
def failing_client() -> TestClient:
    app = FastAPI()
    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    @app.post("/explode")
    async def explode() -> None:
        raise RuntimeError("disk on fire")

    return TestClient(app)


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None
    assert float(duration) >= 0


def test_request_id_on_method_not_allowed(client: TestClient):
    resp = client.get("/gemini", headers={"X-Request-ID": "req-405"})

    assert resp.status_code == 405
    assert resp.headers.get("X-Request-ID") == "req-405"


def test_request_id_on_unhandled_exception(failing_client: TestClient):
    resp = failing_client.post("/explode", headers={"X-Request-ID": "req-500"})

    assert resp.status_code == 500
    assert resp.text == "An internal server error occurred."
    assert resp.headers.get("X-Request-ID") == "req-500"
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_unhandled_exception_log_keeps_request_id(failing_client: TestClient, caplog):
    caplog.set_level(logging.ERROR, logger="app.core.exception_handlers")

    failing_client.post("/explode", headers={"X-Request-ID": "req-log"})

    records = [r for r in caplog.records if r.getMessage() == "unhandled_exception"]
    assert len(records) == 1
    assert records[0].request_id == "req-log"
