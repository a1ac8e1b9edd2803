"""
Tests for structured logging and correlation ids.

Test Strategy:
- JSON formatter emits one object per record with the active correlation id
- correlation_scope sets a fresh id and restores the previous one
- The HTTP middleware echoes or generates X-Correlation-ID
"""
import io
import json
import logging
import sys

from fastapi import FastAPI
from fastapi.testclient import TestClient

from scoreboard.core.logging import (
    JSONFormatter,
    configure_logging,
    correlation_scope,
    get_correlation_id,
)
from scoreboard.core.middleware import HEADER, CorrelationIdMiddleware


class TestJSONFormatter:

    def test_record_carries_correlation_id_and_extra(self):
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        configure_logging(level="INFO", json_output=True, handler=handler)
        logger = logging.getLogger("tests.scan")

        with correlation_scope("tables") as correlation_id:
            logger.info("New Attack From Mars", extra={"cabinet_id": "12"})

        record = json.loads(stream.getvalue().strip())
        assert record["message"] == "New Attack From Mars"
        assert record["level"] == "INFO"
        assert record["correlation_id"] == correlation_id
        assert record["extra"] == {"cabinet_id": "12"}

    def test_exception_is_rendered(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("bad nvram")
        except ValueError:
            record = logging.LogRecord("t", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        data = json.loads(formatter.format(record))
        assert "bad nvram" in data["exception"]


class TestCorrelationScope:

    def test_scope_restores_previous_id(self):
        assert get_correlation_id() == ""
        with correlation_scope("scores") as outer:
            assert outer.startswith("scores-")
            with correlation_scope("activity") as inner:
                assert get_correlation_id() == inner
            assert get_correlation_id() == outer
        assert get_correlation_id() == ""


class TestCorrelationIdMiddleware:

    def make_client(self) -> TestClient:
        app = FastAPI()
        app.add_middleware(CorrelationIdMiddleware)

        @app.get("/ping")
        async def ping():
            return {"correlation_id": get_correlation_id()}

        return TestClient(app)

    def test_echoes_incoming_header(self):
        response = self.make_client().get("/ping", headers={HEADER: "abc-123"})
        assert response.headers[HEADER] == "abc-123"
        assert response.json()["correlation_id"] == "abc-123"

    def test_generates_id_when_missing(self):
        response = self.make_client().get("/ping")
        assert response.headers[HEADER]
        assert response.json()["correlation_id"] == response.headers[HEADER]
