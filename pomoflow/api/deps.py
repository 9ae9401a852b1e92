from __future__ import annotations

import logging
from pathlib import Path

from fastapi import Depends, Request

from ..auth import TokenResolver, bearer_token
from ..clock import Clock
from ..dashboard import DashboardService
from ..db import PomoflowDB
from ..errors import UnauthorizedError
from ..insights import InsightsService
from ..schedule import ScheduleService
from ..templates import TemplateService
from ..timer_engine import TimerEngine

logger = logging.getLogger(__name__)


def get_db(request: Request) -> PomoflowDB:
    db_path = Path(request.app.state.db_path)
    return PomoflowDB(db_path, journal_mode=request.app.state.journal_mode)


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_current_user_id(request: Request) -> str:
    token = bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise UnauthorizedError("No token provided")

    resolver: TokenResolver = request.app.state.token_resolver
    user_id = resolver.resolve(token)
    if not user_id:
        logger.warning("rejected bearer token for %s %s", request.method, request.url.path)
        raise UnauthorizedError("Invalid token")
    return user_id


def get_timer_engine(db: PomoflowDB = Depends(get_db), clock: Clock = Depends(get_clock)) -> TimerEngine:
    return TimerEngine(db, clock)


def get_template_service(db: PomoflowDB = Depends(get_db), clock: Clock = Depends(get_clock)) -> TemplateService:
    return TemplateService(db, clock)


def get_schedule_service(db: PomoflowDB = Depends(get_db), clock: Clock = Depends(get_clock)) -> ScheduleService:
    return ScheduleService(db, clock)


def get_insights_service(
    request: Request,
    db: PomoflowDB = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> InsightsService:
    return InsightsService(db, request.app.state.classifier, clock)


def get_dashboard_service(db: PomoflowDB = Depends(get_db), clock: Clock = Depends(get_clock)) -> DashboardService:
    return DashboardService(db, clock)
