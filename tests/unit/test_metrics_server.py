"""
Unit tests for MetricsServer HTTP endpoints.

Uses ``aiohttp.test_utils`` to drive the server's aiohttp application
without binding the configured metrics port.
"""

from unittest.mock import patch

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from rabbitmq_operator.observability.metrics import MetricsServer, metrics_collector


@pytest.fixture
def metrics_server():
    """Create a fresh MetricsServer instance per test."""
    return MetricsServer(port=0)


@pytest_asyncio.fixture
async def client(metrics_server):
    """Create an aiohttp TestClient from the MetricsServer app."""
    server = TestServer(metrics_server.app)
    async with TestClient(server) as cli:
        yield cli


class TestMetricsEndpoint:
    """Tests for ``GET /metrics``."""

    @pytest.mark.asyncio
    async def test_metrics_returns_operator_series(self, client):
        metrics_collector.record_child_operation("Secret", "metrics-ns", "created")

        resp = await client.get("/metrics")

        assert resp.status == 200
        assert resp.headers["Content-Type"].startswith("text/plain")
        body = await resp.text()
        assert "rabbitmq_operator_child_operations_total" in body
        assert 'namespace="metrics-ns"' in body

    @pytest.mark.asyncio
    async def test_metrics_error_returns_500(self, client):
        """When generate_latest raises, the handler returns 500."""
        with patch(
            "rabbitmq_operator.observability.metrics.generate_latest",
            side_effect=RuntimeError("boom"),
        ):
            resp = await client.get("/metrics")

        assert resp.status == 500
        assert "RuntimeError" in await resp.text()


class TestHealthEndpoint:
    """Tests for ``GET /healthz``."""

    @pytest.mark.asyncio
    async def test_healthz(self, client):
        resp = await client.get("/healthz")

        assert resp.status == 200
        assert await resp.text() == "ok"


class TestLifecycle:
    """Tests for start and stop."""

    @pytest.mark.asyncio
    async def test_stop_without_start_is_safe(self, metrics_server):
        await metrics_server.stop()

        assert metrics_server.runner is None
        assert metrics_server.site is None
