"""RequestLogMiddleware: request ids and access log lines."""
import logging

import pytest
from httpx import AsyncClient


class TestRequestLog:
    async def test_generates_request_id(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        request_id = resp.headers["X-Request-ID"]
        assert request_id.startswith("req_")
        assert len(request_id) == len("req_") + 12

    async def test_reuses_incoming_request_id(self, client: AsyncClient) -> None:
        resp = await client.get("/health", headers={"X-Request-ID": "  trace-42  "})
        assert resp.headers["X-Request-ID"] == "trace-42"

    async def test_truncates_long_request_id(self, client: AsyncClient) -> None:
        resp = await client.get("/health", headers={"X-Request-ID": "x" * 100})
        assert resp.headers["X-Request-ID"] == "x" * 64

    async def test_logs_request_line(
        self, client: AsyncClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="sim.request"):
            resp = await client.get("/health")
        [record] = [r for r in caplog.records if r.name == "sim.request"]
        assert record.levelno == logging.INFO
        message = record.getMessage()
        assert message.startswith("[GET] /health -> 200")
        assert message.endswith(resp.headers["X-Request-ID"])

    async def test_unknown_route_is_info(
        self, client: AsyncClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="sim.request"):
            resp = await client.get("/nope")
        assert resp.status_code == 404
        [record] = [r for r in caplog.records if r.name == "sim.request"]
        assert record.levelno == logging.INFO
        assert "-> 404" in record.getMessage()
