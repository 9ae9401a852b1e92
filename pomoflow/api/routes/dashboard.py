from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from ...dashboard import DashboardService, FocusStats
from ..deps import get_current_user_id, get_dashboard_service
from ..schemas import FocusStatsOut, OverviewOut, StreakOut, TodayItemOut

router = APIRouter(prefix="/api", tags=["dashboard"])


def _minutes_text(value: float) -> str:
    return f"{value:g}m"


def _stats_out(stats: FocusStats) -> FocusStatsOut:
    return FocusStatsOut(
        total_focus_time=_minutes_text(stats.total_focus_minutes),
        sessions_completed=stats.sessions_completed,
        average_session=_minutes_text(stats.average_session_minutes),
    )


@router.get("/dashboard/streak", response_model=StreakOut)
def streak(
    user_id: str = Depends(get_current_user_id),
    service: DashboardService = Depends(get_dashboard_service),
) -> StreakOut:
    return StreakOut(**asdict(service.streak(user_id)))


@router.get("/dashboard/today-schedule", response_model=list[TodayItemOut])
def today_schedule(
    user_id: str = Depends(get_current_user_id),
    service: DashboardService = Depends(get_dashboard_service),
) -> list[TodayItemOut]:
    return [TodayItemOut(**asdict(item)) for item in service.today_schedule(user_id)]


@router.get("/dashboard/stats", response_model=FocusStatsOut)
def focus_stats(
    user_id: str = Depends(get_current_user_id),
    service: DashboardService = Depends(get_dashboard_service),
) -> FocusStatsOut:
    return _stats_out(service.focus_stats(user_id))


@router.get("/dashboard/overview", response_model=OverviewOut)
def overview(
    user_id: str = Depends(get_current_user_id),
    service: DashboardService = Depends(get_dashboard_service),
) -> OverviewOut:
    return OverviewOut(**asdict(service.overview(user_id)))
