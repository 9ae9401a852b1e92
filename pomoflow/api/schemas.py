from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TimerSessionOut(BaseModel):
    id: int
    user_id: str
    session_template_id: int | None = None
    duration_minutes: float
    phase: str
    current_cycle: int
    target_cycles: int
    completed: bool
    paused: bool
    start_time: datetime
    end_time: datetime | None = None
    created_at: datetime
    notes: str | None = None
    session_group_id: str | None = None
    sentiment_label: str | None = None
    sentiment_score: float | None = None
    analyzed_at: datetime | None = None
    remaining_seconds: int | None = None


class TimerStartRequest(BaseModel):
    # Left untyped so bad values reach the engine's own validation messages.
    session_template_id: Any = None
    duration_minutes: Any = None
    phase: Any = None
    current_cycle: Any = None
    target_cycles: Any = None
    session_group_id: Any = None


class TimerIdRequest(BaseModel):
    timer_id: Any = None


class TimerNotesRequest(BaseModel):
    notes: str | None = None


class TimerTransitionRequest(BaseModel):
    completed_timer_id: Any = None
    next: TimerStartRequest | None = None


class TimerTransitionOut(BaseModel):
    completed: TimerSessionOut
    started: TimerSessionOut | None = None
    run_complete: bool


class TemplateIn(BaseModel):
    name: Any = None
    focus_duration: Any = None
    break_duration: Any = None
    description: str | None = None


class TemplateOut(BaseModel):
    id: int
    user_id: str
    name: str
    focus_duration: float
    break_duration: float
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class TemplateSummaryOut(BaseModel):
    id: int
    name: str
    focus_duration: float
    break_duration: float
    description: str | None = None


class ScheduleIn(BaseModel):
    session_id: Any = None
    title: str | None = None
    start_datetime: Any = None
    duration_min: Any = None
    completed: bool = False


class ScheduleOut(BaseModel):
    id: int
    user_id: str
    session_id: int | None = None
    title: str | None = None
    start_datetime: datetime
    duration_min: float
    completed: bool
    created_at: datetime | None = None
    session: TemplateSummaryOut | None = None


class SentimentOut(BaseModel):
    label: str | None = None
    score: float | None = None


class CompletedSessionOut(BaseModel):
    id: str
    title: str
    date: datetime | None = None
    duration: float
    focus_blocks: int = Field(serialization_alias="focusBlocks")
    target_cycles: int = Field(serialization_alias="targetCycles")
    sentiment: SentimentOut | None = None
    analyzed_at: datetime | None = Field(default=None, serialization_alias="analyzedAt")


class CompletedSessionsOut(BaseModel):
    sessions: list[CompletedSessionOut]


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Any = None
    sessionId: Any = None
    notes: str | None = None
    sentiment_label: str | None = None
    sentiment_score: Any = None


class AnalyzeOut(BaseModel):
    id: str
    analyzed_at: datetime = Field(serialization_alias="analyzedAt")
    sentiment: SentimentOut


class InsightStatsOut(BaseModel):
    total: int
    completed: int
    analyzed: int
    positive: int
    neutral: int
    negative: int


class StreakOut(BaseModel):
    current_streak: int = Field(serialization_alias="currentStreak")
    longest_streak: int = Field(serialization_alias="longestStreak")
    total_days: int = Field(serialization_alias="totalDays")
    last_login_date: str = Field(serialization_alias="lastLoginDate")


class TodayItemOut(BaseModel):
    id: str
    time: str
    title: str
    duration: str
    type: str
    completed: bool


class FocusStatsOut(BaseModel):
    total_focus_time: str = Field(serialization_alias="totalFocusTime")
    sessions_completed: int = Field(serialization_alias="sessionsCompleted")
    average_session: str = Field(serialization_alias="averageSession")


class OverviewOut(BaseModel):
    streak: StreakOut
    todays_schedule: list[TodayItemOut] = Field(serialization_alias="todaysSchedule")
    templates: list[TemplateOut]


class HealthOut(BaseModel):
    status: str = Field(default="ok")
