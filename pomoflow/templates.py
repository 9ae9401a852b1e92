from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Any

from .clock import Clock, RealClock
from .db import PomoflowDB, SessionTemplate
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateInput:
    name: str
    focus_duration: float
    break_duration: float
    description: str | None = None


def as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def compact_number(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


def build_template_input(payload: dict[str, Any]) -> TemplateInput:
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Name is required")

    focus = as_number(payload.get("focus_duration"))
    if focus is None or focus < 1:
        raise ValidationError("Focus duration must be at least 1 minute")
    brk = as_number(payload.get("break_duration"))
    if brk is None or brk < 1:
        raise ValidationError("Break duration must be at least 1 minute")

    description = payload.get("description")
    return TemplateInput(
        name=name.strip(),
        focus_duration=compact_number(focus),
        break_duration=compact_number(brk),
        description=str(description) if description is not None else None,
    )


class TemplateService:
    def __init__(self, db: PomoflowDB, clock: Clock | None = None) -> None:
        self.db = db
        self.clock = clock or RealClock()

    def list(self, user_id: str) -> list[SessionTemplate]:
        return self.db.list_templates(user_id)

    def get(self, user_id: str, template_id: int) -> SessionTemplate:
        template = self.db.get_template(template_id, user_id)
        if template is None:
            raise NotFoundError("Session not found")
        return template

    def create(self, user_id: str, payload: dict[str, Any]) -> SessionTemplate:
        data = build_template_input(payload)
        return self.db.insert_template(
            user_id=user_id,
            name=data.name,
            focus_duration=data.focus_duration,
            break_duration=data.break_duration,
            description=data.description,
            created_at=self.clock.now(),
        )

    def update(self, user_id: str, template_id: int, payload: dict[str, Any]) -> SessionTemplate:
        data = build_template_input(payload)
        updated = self.db.update_template(
            template_id=template_id,
            user_id=user_id,
            name=data.name,
            focus_duration=data.focus_duration,
            break_duration=data.break_duration,
            description=data.description,
            updated_at=self.clock.now(),
        )
        if updated is None:
            raise NotFoundError("Session not found")
        return updated

    def delete(self, user_id: str, template_id: int) -> None:
        deleted, timers, schedules = self.db.delete_template_cascade(template_id, user_id)
        if not deleted:
            raise NotFoundError("Session not found")
        logger.info(
            "template %s deleted for user %s (timer rows: %d, scheduled rows: %d)",
            template_id,
            user_id,
            timers,
            schedules,
        )
