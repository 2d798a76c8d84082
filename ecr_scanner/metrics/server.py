"""HTTP endpoint exposing scan counters in the Prometheus text format."""

import asyncio
import logging
import socket

import uvicorn
from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

logger = logging.getLogger(__name__)


class MetricsServerError(Exception):
    """Raised when the metrics listener cannot be bound."""


def build_metrics_app(registry: CollectorRegistry, metrics_path: str) -> FastAPI:
    """Build an ASGI app serving a single GET route at metrics_path.

    Docs and OpenAPI routes are disabled so the metrics route is the only one.
    """
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.get(metrics_path, include_in_schema=False)
    async def metrics_endpoint() -> Response:
        payload = generate_latest(registry)
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    return app


class MetricsServer:
    """Runs the metrics app under uvicorn on a pre-bound socket.

    Binding happens separately from serving so a bind failure surfaces as a
    MetricsServerError before the scheduler starts.
    """

    def __init__(self, app: FastAPI, host: str, port: int):
        self.app = app
        self.host = host
        self.port = port
        self._socket: socket.socket | None = None
        self._server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=host,
                port=port,
                log_config=None,
                access_log=False,
                lifespan="off",
            )
        )

    @property
    def started(self) -> bool:
        return self._server.started

    @property
    def bound_port(self) -> int | None:
        """Port actually bound (differs from `port` when port 0 was requested)."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[1]

    def bind(self) -> socket.socket:
        """Bind the listening socket.

        Raises:
            MetricsServerError: If the address cannot be bound.
        """
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        try:
            self._socket = socket.create_server((self.host, self.port), family=family)
        except OSError as e:
            raise MetricsServerError(f"failed to bind {self.host}:{self.port}: {e}") from e

        logger.debug("metrics listener bound", extra={"address": f"{self.host}:{self.bound_port}"})
        return self._socket

    async def serve(self) -> None:
        """Serve until shutdown() is called or a termination signal arrives."""
        if self._socket is None:
            self.bind()
        logger.debug("starting webserver")
        await self._server.serve(sockets=[self._socket])

    async def wait_started(self, poll_interval: float = 0.01) -> None:
        while not self._server.started:
            await asyncio.sleep(poll_interval)

    def shutdown(self) -> None:
        """Ask the running server to exit."""
        self._server.should_exit = True
