from __future__ import annotations

from fastapi import APIRouter, Depends

from ...insights import InsightsService
from ..deps import get_current_user_id, get_insights_service
from ..schemas import (
    AnalyzeOut,
    AnalyzeRequest,
    CompletedSessionOut,
    CompletedSessionsOut,
    InsightStatsOut,
    SentimentOut,
)

router = APIRouter(prefix="/api", tags=["insights"])


@router.get("/insights/completed-sessions", response_model=CompletedSessionsOut)
def completed_sessions(
    user_id: str = Depends(get_current_user_id),
    service: InsightsService = Depends(get_insights_service),
) -> CompletedSessionsOut:
    sessions = [
        CompletedSessionOut(
            id=view.id,
            title=view.title,
            date=view.date,
            duration=view.duration,
            focus_blocks=view.focus_blocks,
            target_cycles=view.target_cycles,
            sentiment=SentimentOut(**view.sentiment) if view.sentiment else None,
            analyzed_at=view.analyzed_at,
        )
        for view in service.list_completed_sessions(user_id)
    ]
    return CompletedSessionsOut(sessions=sessions)


@router.post("/insights/analyze", response_model=AnalyzeOut)
def analyze(
    payload: AnalyzeRequest,
    user_id: str = Depends(get_current_user_id),
    service: InsightsService = Depends(get_insights_service),
) -> AnalyzeOut:
    body = payload.model_dump(exclude_unset=True)
    result = service.analyze(user_id, body)
    return AnalyzeOut(
        id=result.id,
        analyzed_at=result.analyzed_at,
        sentiment=SentimentOut(label=result.label, score=result.score),
    )


@router.get("/insights/stats", response_model=InsightStatsOut)
def insight_stats(
    user_id: str = Depends(get_current_user_id),
    service: InsightsService = Depends(get_insights_service),
) -> InsightStatsOut:
    return InsightStatsOut(**service.stats(user_id))
