import asyncio
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from anita import __version__
from anita import config as app_config
from anita.config import settings
from anita.db import init_db
from anita.logging import configure_dev_logging, configure_json_logging
from anita.middleware.request_id import RequestIdMiddleware
from anita.middleware.request_logging import RequestLogMiddleware
from anita.routers import chat, health, transactions
from anita.services.admission_guard import (
    AdmissionGuard,
    RateLimitExceeded,
    admission_sweep_loop,
)

if settings.APP_ENV.lower() == "prod":
    configure_json_logging(settings.LOG_LEVEL)
else:
    configure_dev_logging(settings.LOG_LEVEL)

logger = logging.getLogger("anita")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if getattr(app.state, "admission_guard", None) is None:
        app.state.admission_guard = AdmissionGuard()
    app.state._bg_tasks = []
    if not settings.ADMISSION_SWEEP_DISABLE:
        t = asyncio.create_task(
            admission_sweep_loop(app.state.admission_guard, settings.ADMISSION_SWEEP_INTERVAL_S)
        )
        app.state._bg_tasks.append(t)
    try:
        yield
    finally:
        for t in app.state._bg_tasks:
            t.cancel()
        if app.state._bg_tasks:
            await asyncio.gather(*app.state._bg_tasks, return_exceptions=True)


def create_app() -> FastAPI:
    app = FastAPI(title="ANITA Finance Assistant", version=__version__, lifespan=lifespan)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(status_code=429, content=exc.detail, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Log unhandled exceptions with full traceback."""
        logger.error(
            "Unhandled exception in API request %s %s:\n%s",
            request.method,
            request.url.path,
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Last added runs first: request id must be set before the request log line
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(transactions.router)
    return app


app = create_app()
