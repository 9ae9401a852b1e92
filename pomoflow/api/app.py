from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..auth import TokenResolver, build_token_resolver
from ..clock import Clock, RealClock
from ..config import Settings, configure_logging
from ..db import PomoflowDB
from ..errors import ServiceError, StorageError, UpstreamError
from ..sentiment import HuggingFaceClassifier, SentimentClassifier
from .routes.dashboard import router as dashboard_router
from .routes.health import router as health_router
from .routes.insights import router as insights_router
from .routes.schedule import router as schedule_router
from .routes.sessions import router as sessions_router
from .routes.timer import router as timer_router

logger = logging.getLogger(__name__)


def create_app(
    db_path: Path | None = None,
    settings: Settings | None = None,
    classifier: SentimentClassifier | None = None,
    token_resolver: TokenResolver | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    resolved_db = Path(db_path or settings.db_path)
    PomoflowDB(resolved_db, journal_mode=settings.journal_mode)

    app = FastAPI(title="Pomoflow API", version=__version__)
    app.state.db_path = str(resolved_db)
    app.state.journal_mode = settings.journal_mode
    app.state.clock = clock or RealClock()
    app.state.classifier = classifier if classifier is not None else HuggingFaceClassifier.from_settings(settings)
    app.state.token_resolver = token_resolver or build_token_resolver(settings)

    if app.state.classifier is None:
        logger.info("no sentiment API key configured; analyze requires client-supplied sentiment")

    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    app.include_router(health_router)
    app.include_router(sessions_router)
    app.include_router(schedule_router)
    app.include_router(timer_router)
    app.include_router(insights_router)
    app.include_router(dashboard_router)
    return app


def create_default_app() -> FastAPI:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return create_app(settings=settings)


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    message = exc.message
    if isinstance(exc, (StorageError, UpstreamError)):
        if isinstance(exc, StorageError):
            logger.exception("storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        else:
            logger.warning("upstream failure on %s %s: %s", request.method, request.url.path, exc.message)
        message = exc.public_message
    return JSONResponse(status_code=exc.status, content={"error": message})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid request"})
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(location) or "body"
    return JSONResponse(status_code=400, content={"error": f"{field}: {first.get('msg', 'invalid value')}"})
