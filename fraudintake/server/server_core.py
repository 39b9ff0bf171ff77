"""Core server initialization and lifecycle."""

from __future__ import annotations

import logging

from aiohttp import web

from ..intake.pipeline import SubmissionPipeline
from ..storage.database import Database
from .server_config import ServerConfig

logger = logging.getLogger(__name__)


class IntakeServerCoreMixin:
    """Core server lifecycle."""

    def __init__(
        self,
        *,
        config: ServerConfig,
        database: Database,
        pipeline: SubmissionPipeline,
    ):
        self.config = config
        self.database = database
        self.pipeline = pipeline

        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

        self._app = web.Application(middlewares=[self._no_store_middleware])
        self._register_routes()

    @property
    def app(self) -> web.Application:
        return self._app

    async def start(self) -> None:
        if not self.config.enabled:
            logger.info("Intake server disabled")
            return
        if self._runner:
            return
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, host=self.config.host, port=int(self.config.port))
        await self._site.start()
        logger.info("Intake server listening on %s:%s", self.config.host, self.config.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None

    @web.middleware
    async def _no_store_middleware(self, request: web.Request, handler):  # type: ignore[override]
        response = await handler(request)
        if (request.path or "").startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"
        return response

    async def _healthz(self, request: web.Request) -> web.Response:
        return web.json_response({"ok": True})
