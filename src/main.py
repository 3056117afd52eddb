"""Entry point for the browser phone bridge service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.routes import router as api_router
from calls.errors import CallError
from calls.factory import build_orchestrator
from calls.orchestrator import CallOrchestrator
from config.settings import get_settings

LOGGER = logging.getLogger(__name__)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logging.getLogger("twilio.http_client").setLevel(logging.WARNING)


async def call_error_handler(request: Request, exc: CallError) -> JSONResponse:
    LOGGER.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app(orchestrator_factory: Callable[[], CallOrchestrator] = build_orchestrator) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        orchestrator = orchestrator_factory()
        app.state.orchestrator = orchestrator
        await orchestrator.start()
        try:
            yield
        finally:
            await orchestrator.shutdown()

    app = FastAPI(
        title="Browser Phone Bridge",
        description="Browser-to-phone calling through Twilio Voice.",
        lifespan=lifespan,
    )
    app.add_exception_handler(CallError, call_error_handler)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
