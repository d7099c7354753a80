"""Liveness endpoint - GET /health with process uptime."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from aiohttp import web

log = logging.getLogger(__name__)


class HealthServer:
    """Serves a JSON health probe on ``host:port``."""

    def __init__(
        self,
        port: int = 3000,
        host: str = "0.0.0.0",
        start_time: float | None = None,
    ) -> None:
        self._port = port
        self._host = host
        self._start_time = start_time if start_time is not None else time.monotonic()
        self._runner: web.AppRunner | None = None

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        return app

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "healthy",
            "uptime": round(time.monotonic() - self._start_time, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    async def start(self) -> None:
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        log.info("Health check endpoint listening on port %d", self._port)

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
