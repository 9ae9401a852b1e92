from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .clock import Clock, RealClock
from .db import PomoflowDB, ScheduledSession
from .errors import NotFoundError, ValidationError
from .templates import as_number, compact_number
from .timer_engine import parse_row_id

DEFAULT_DURATION_MIN = 25


@dataclass(frozen=True)
class ScheduleInput:
    session_id: int | None
    title: str | None
    start_datetime: datetime
    duration_min: float
    completed: bool


def parse_datetime(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise ValidationError(f"{field} is required")
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"{field} must be an ISO-8601 date or datetime") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_schedule_input(payload: dict[str, Any], allow_missing_title: bool) -> ScheduleInput:
    if not payload.get("start_datetime"):
        raise ValidationError("start_datetime is required")
    start = parse_datetime(payload.get("start_datetime"), "start_datetime")

    session_raw = payload.get("session_id")
    session_id = parse_row_id(session_raw, "session_id") if session_raw not in (None, "") else None

    title_raw = payload.get("title")
    title = (str(title_raw).strip() or None) if title_raw is not None else None
    if session_id is None and title is None and not allow_missing_title:
        raise ValidationError("provide session_id or title")

    duration_raw = payload.get("duration_min")
    duration = as_number(DEFAULT_DURATION_MIN if duration_raw is None else duration_raw)
    if duration is None or duration <= 0:
        raise ValidationError("duration_min must be > 0")

    return ScheduleInput(
        session_id=session_id,
        title=title,
        start_datetime=start,
        duration_min=compact_number(duration),
        completed=bool(payload.get("completed") or False),
    )


class ScheduleService:
    def __init__(self, db: PomoflowDB, clock: Clock | None = None) -> None:
        self.db = db
        self.clock = clock or RealClock()

    def list(self, user_id: str, start: Any = None, end: Any = None) -> list[ScheduledSession]:
        since = parse_datetime(start, "from") if start else None
        until = parse_datetime(end, "to") if end else None
        return self.db.list_scheduled(user_id, since, until)

    def get(self, user_id: str, scheduled_id: int) -> ScheduledSession:
        item = self.db.get_scheduled(scheduled_id, user_id)
        if item is None:
            raise NotFoundError("Scheduled session not found")
        return item

    def create(self, user_id: str, payload: dict[str, Any]) -> ScheduledSession:
        data = build_schedule_input(payload, allow_missing_title=False)
        self._check_template(user_id, data.session_id)
        return self.db.insert_scheduled(
            user_id=user_id,
            session_id=data.session_id,
            title=data.title,
            start_datetime=data.start_datetime,
            duration_min=data.duration_min,
            created_at=self.clock.now(),
        )

    def update(self, user_id: str, scheduled_id: int, payload: dict[str, Any]) -> ScheduledSession:
        data = build_schedule_input(payload, allow_missing_title=True)
        self._check_template(user_id, data.session_id)
        updated = self.db.update_scheduled(
            scheduled_id=scheduled_id,
            user_id=user_id,
            session_id=data.session_id,
            title=data.title,
            start_datetime=data.start_datetime,
            duration_min=data.duration_min,
            completed=data.completed,
        )
        if updated is None:
            raise NotFoundError("Scheduled session not found")
        return updated

    def delete(self, user_id: str, scheduled_id: int) -> None:
        if not self.db.delete_scheduled(scheduled_id, user_id):
            raise NotFoundError("Scheduled session not found")

    def _check_template(self, user_id: str, session_id: int | None) -> None:
        if session_id is not None and self.db.get_template(session_id, user_id) is None:
            raise ValidationError("Invalid session_id")
