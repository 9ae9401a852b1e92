from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time as dtime, timedelta, timezone

from .clock import Clock, RealClock
from .db import PomoflowDB, SessionTemplate


@dataclass(frozen=True)
class StreakSummary:
    current_streak: int
    longest_streak: int
    total_days: int
    last_login_date: str


@dataclass(frozen=True)
class TodayItem:
    id: str
    time: str
    title: str
    duration: str
    type: str
    completed: bool


@dataclass(frozen=True)
class FocusStats:
    total_focus_minutes: float
    sessions_completed: int
    average_session_minutes: int


@dataclass(frozen=True)
class Overview:
    streak: StreakSummary
    todays_schedule: list[TodayItem]
    templates: list[SessionTemplate]


def current_streak(days: list[date], today: date) -> int:
    seen = set(days)
    streak = 0
    while today - timedelta(days=streak) in seen:
        streak += 1
    return streak


def longest_streak(days: list[date]) -> int:
    ordered = sorted(set(days))
    if not ordered:
        return 0
    longest = current = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr - prev).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


class DashboardService:
    def __init__(self, db: PomoflowDB, clock: Clock | None = None) -> None:
        self.db = db
        self.clock = clock or RealClock()

    def _today(self) -> date:
        return self.clock.now().astimezone(timezone.utc).date()

    def streak(self, user_id: str) -> StreakSummary:
        days = [date.fromisoformat(text) for text in self.db.completed_days(user_id)]
        today = self._today()
        return StreakSummary(
            current_streak=current_streak(days, today),
            longest_streak=longest_streak(days),
            total_days=len(set(days)),
            last_login_date=(max(days) if days else today).isoformat(),
        )

    def today_schedule(self, user_id: str) -> list[TodayItem]:
        day_start = datetime.combine(self._today(), dtime.min, tzinfo=timezone.utc)
        day_end = day_start + timedelta(days=1) - timedelta(milliseconds=1)

        items: list[TodayItem] = []
        for entry in self.db.list_scheduled(user_id, day_start, day_end):
            template = entry.session
            minutes = entry.duration_min or (template.focus_duration if template else None) or 25
            items.append(
                TodayItem(
                    id=str(entry.id),
                    time=entry.start_datetime.strftime("%H:%M"),
                    title=entry.title or (template.name if template else None) or "Untitled Session",
                    duration=f"{minutes:g} min",
                    type="focus",
                    completed=entry.completed,
                )
            )
        return items

    def focus_stats(self, user_id: str, days: int = 7) -> FocusStats:
        since = self.clock.now() - timedelta(days=days)
        count, total, average = self.db.focus_totals_since(user_id, since)
        return FocusStats(
            total_focus_minutes=total or 0,
            sessions_completed=count,
            average_session_minutes=int(round(average)),
        )

    def overview(self, user_id: str) -> Overview:
        return Overview(
            streak=self.streak(user_id),
            todays_schedule=self.today_schedule(user_id),
            templates=self.db.list_templates(user_id),
        )
