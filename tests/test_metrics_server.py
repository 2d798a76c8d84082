"""Tests for the metrics endpoint."""

import asyncio
import socket

import httpx
import pytest

from ecr_scanner.config import load_settings
from ecr_scanner.metrics.scan_counters import ScanCounters
from ecr_scanner.metrics.server import MetricsServer, MetricsServerError, build_metrics_app
from ecr_scanner.models.model_scanner import ScanOutcome


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


class TestMetricsApp:
    """Tests for the ASGI app."""

    @pytest.mark.asyncio
    async def test_serves_zero_counters(self, counters: ScanCounters) -> None:
        app = build_metrics_app(counters.registry, "/metrics")

        async with _client(app) as client:
            response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "aws_ecr_scans_requested_total 0.0" in response.text
        assert "aws_ecr_scans_requested_errors_total 0.0" in response.text
        assert "aws_ecr_scans_rate_limited_total 0.0" in response.text

    @pytest.mark.asyncio
    async def test_reflects_recorded_outcomes(self, counters: ScanCounters) -> None:
        app = build_metrics_app(counters.registry, "/metrics")
        counters.record(ScanOutcome.REQUESTED)
        counters.record(ScanOutcome.RATE_LIMITED)

        async with _client(app) as client:
            response = await client.get("/metrics")

        assert "aws_ecr_scans_requested_total 1.0" in response.text
        assert "aws_ecr_scans_rate_limited_total 1.0" in response.text

    @pytest.mark.asyncio
    async def test_only_metrics_route_exists(self, counters: ScanCounters) -> None:
        app = build_metrics_app(counters.registry, "/internal/metrics")

        async with _client(app) as client:
            assert (await client.get("/internal/metrics")).status_code == 200
            assert (await client.get("/metrics")).status_code == 404
            assert (await client.get("/docs")).status_code == 404
            assert (await client.get("/openapi.json")).status_code == 404
            assert (await client.post("/internal/metrics")).status_code == 405


class TestMetricsServer:
    """Tests for serving over a real socket."""

    @pytest.mark.asyncio
    async def test_reachable_at_configured_address(
        self, monkeypatch: pytest.MonkeyPatch, counters: ScanCounters
    ) -> None:
        monkeypatch.setenv("AWS_ECR_SCANNER_WEB_HOST", "localhost")
        monkeypatch.setenv("AWS_ECR_SCANNER_WEB_PORT", "0")
        monkeypatch.setenv("AWS_ECR_SCANNER_METRICS_PATH", "/scan-metrics")
        settings = load_settings()
        assert settings.web_host == "localhost"

        app = build_metrics_app(counters.registry, settings.metrics_path)
        server = MetricsServer(app, settings.web_host, settings.web_port)
        server.bind()
        task = asyncio.create_task(server.serve())
        try:
            await asyncio.wait_for(server.wait_started(), timeout=5)
            url = f"http://{settings.web_host}:{server.bound_port}{settings.metrics_path}"
            async with httpx.AsyncClient(trust_env=False) as client:
                response = await client.get(url)
        finally:
            server.shutdown()
            await asyncio.wait_for(task, timeout=5)

        assert response.status_code == 200
        assert "aws_ecr_scans_requested_total 0.0" in response.text
        assert "aws_ecr_scans_requested_errors_total 0.0" in response.text
        assert "aws_ecr_scans_rate_limited_total 0.0" in response.text

    def test_bind_failure(self, counters: ScanCounters) -> None:
        occupied = socket.create_server(("127.0.0.1", 0))
        try:
            port = occupied.getsockname()[1]
            server = MetricsServer(build_metrics_app(counters.registry, "/metrics"), "127.0.0.1", port)

            with pytest.raises(MetricsServerError):
                server.bind()
        finally:
            occupied.close()

    def test_bound_port_before_bind(self, counters: ScanCounters) -> None:
        server = MetricsServer(build_metrics_app(counters.registry, "/metrics"), "127.0.0.1", 2112)
        assert server.bound_port is None
        assert server.started is False
