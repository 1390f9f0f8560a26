from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..automation.engine import EngineFactory
from ..automation.monitor import AvailabilityMonitor
from ..core.config import Settings
from ..service.auth import CredentialValidator
from ..service.rotation import CREDS_HEADER, RotationService, Validator

logger = logging.getLogger("uirotator.api")


def playwright_factory(settings: Settings) -> EngineFactory:
    from ..automation.playwright_engine import PlaywrightEngine

    return partial(PlaywrightEngine, executable_path=settings.chromium_path, args=settings.browser_args)


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    error = context.get("exception")
    logger.error("Unhandled error in background task: %s", context.get("message"), exc_info=error)


def create_app(
    settings: Settings,
    validator: Optional[Validator] = None,
    engine_factory: Optional[EngineFactory] = None,
    monitor: Optional[AvailabilityMonitor] = None,
) -> FastAPI:
    """Build the rotator application.

    ``validator`` and ``engine_factory`` default to the Akeyless validation
    endpoint and a Playwright Chromium session built from ``settings``.
    """
    if engine_factory is None:
        engine_factory = playwright_factory(settings)
    if validator is None:
        validator = CredentialValidator(
            settings.validation_url,
            settings.expected_access_id,
            timeout_s=settings.validation_timeout_s,
        )
    if monitor is None:
        monitor = AvailabilityMonitor(engine_factory, interval_s=settings.readiness_interval_s)

    service = RotationService(
        validator,
        engine_factory,
        step_timeout_ms=settings.step_timeout_ms,
        recording_timeout_s=settings.recording_timeout_s,
        expose_stack=settings.expose_stack,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
        monitor.start()
        logger.info("Server running on port: %s", settings.port)
        try:
            yield
        finally:
            await monitor.stop()

    app = FastAPI(title="ui-rotator", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.state.monitor = monitor

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error("Unhandled error: %s", exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/health")
    async def health():
        logger.debug("Health check called")
        return {"status": "OK"}

    @app.get("/ready")
    async def ready():
        logger.debug("Readiness probe called")
        if monitor.ready:
            return {"status": "Ready"}
        logger.warning("Readiness probe: Not Ready")
        return JSONResponse(status_code=503, content={"status": "Not Ready"})

    @app.post("/rotate")
    async def rotate(request: Request):
        creds = request.headers.get(CREDS_HEADER)
        body = await request.body()
        result = await service.rotate(creds, body)
        return JSONResponse(status_code=result.status_code, content=result.content)

    return app
