"""Timer phase engine.

Every phase of a pomodoro run is one ``timer_sessions`` row. A user has at most
one active (``completed = 0``) row when clients complete a phase before starting
the next one; rows of one run share a ``session_group_id``. Nothing is kept in
process memory: each call reads the user's rows fresh from storage.

Run states and the calls that move between them::

    IDLE --start(focus)--> FOCUS --pause/resume--> FOCUS (paused)
    FOCUS --complete + start(break)--> BREAK      (cycle + 1)
    BREAK --complete + start(focus)--> FOCUS      (cycle < target)
    FOCUS --complete--> DONE                      (cycle + 1 >= target)
    any active state --stop--> DONE
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any

from .clock import Clock, RealClock
from .db import VALID_PHASES, NewPhase, PomoflowDB, TimerPhaseRow
from .errors import NotFoundError, ValidationError
from .templates import as_number, compact_number

logger = logging.getLogger(__name__)

DEFAULT_TARGET_CYCLES = 4
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200


@dataclass(frozen=True)
class PhaseSpec:
    duration_minutes: float
    phase: str = "focus"
    current_cycle: int = 0
    target_cycles: int = DEFAULT_TARGET_CYCLES
    session_template_id: int | None = None
    session_group_id: str | None = None


@dataclass(frozen=True)
class PhaseDurations:
    focus_minutes: float = 25
    short_break_minutes: float = 5
    long_break_minutes: float = 15
    cycles_before_long_break: int = 4


@dataclass(frozen=True)
class TransitionResult:
    completed: TimerPhaseRow
    started: TimerPhaseRow | None

    @property
    def run_complete(self) -> bool:
        return self.started is None


def _as_int(value: Any, field: str, minimum: int, default: int) -> int:
    if value is None:
        return default
    number = as_number(value)
    if number is None or not number.is_integer() or number < minimum:
        raise ValidationError(f"{field} must be an integer >= {minimum}")
    return int(number)


def parse_row_id(value: Any, field: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"{field} is required")
    number = as_number(value)
    if number is None or not number.is_integer() or number < 1:
        raise ValidationError(f"Invalid {field}")
    return int(number)


def build_phase_spec(payload: dict[str, Any]) -> PhaseSpec:
    duration = as_number(payload.get("duration_minutes"))
    if duration is None or duration <= 0:
        raise ValidationError("duration_minutes is required and must be > 0")

    phase = payload.get("phase")
    if phase is None:
        phase = "focus"
    if phase not in VALID_PHASES:
        raise ValidationError(f"Invalid phase. Use one of: {', '.join(VALID_PHASES)}")

    current_cycle = _as_int(payload.get("current_cycle"), "current_cycle", 0, 0)
    target_cycles = _as_int(payload.get("target_cycles"), "target_cycles", 1, DEFAULT_TARGET_CYCLES)
    if current_cycle > target_cycles:
        raise ValidationError("current_cycle cannot exceed target_cycles")

    template_raw = payload.get("session_template_id")
    template_id = parse_row_id(template_raw, "session_template_id") if template_raw is not None else None

    group_raw = payload.get("session_group_id")
    group_id = (str(group_raw).strip() or None) if group_raw is not None else None

    return PhaseSpec(
        duration_minutes=compact_number(duration),
        phase=str(phase),
        current_cycle=current_cycle,
        target_cycles=target_cycles,
        session_template_id=template_id,
        session_group_id=group_id,
    )


def inherit_from(row: TimerPhaseRow, payload: dict[str, Any]) -> dict[str, Any]:
    """Fill the next phase's run fields from the phase that just finished."""
    merged = {key: value for key, value in payload.items() if value is not None}
    merged.setdefault("session_group_id", row.session_group_id)
    merged.setdefault("session_template_id", row.session_template_id)
    merged.setdefault("target_cycles", row.target_cycles)
    if row.phase == "focus":
        merged.setdefault("current_cycle", row.current_cycle + 1)
    else:
        merged.setdefault("current_cycle", row.current_cycle)
    return merged


def plan_next_phase(row: TimerPhaseRow, durations: PhaseDurations) -> PhaseSpec | None:
    """Decide what follows ``row``; ``None`` means the run is done."""
    if row.phase == "focus":
        cycle = row.current_cycle + 1
        if cycle >= row.target_cycles:
            return None
        every = max(1, durations.cycles_before_long_break)
        is_long = cycle % every == 0
        return PhaseSpec(
            duration_minutes=durations.long_break_minutes if is_long else durations.short_break_minutes,
            phase="long_break" if is_long else "short_break",
            current_cycle=cycle,
            target_cycles=row.target_cycles,
            session_template_id=row.session_template_id,
            session_group_id=row.session_group_id,
        )

    if row.current_cycle >= row.target_cycles:
        return None
    return PhaseSpec(
        duration_minutes=durations.focus_minutes,
        phase="focus",
        current_cycle=row.current_cycle,
        target_cycles=row.target_cycles,
        session_template_id=row.session_template_id,
        session_group_id=row.session_group_id,
    )


def minutes_to_seconds(minutes: float) -> int:
    if minutes <= 0:
        return 0
    seconds = int(round(minutes * 60))
    return max(1, seconds)


def remaining_seconds(row: TimerPhaseRow, now: datetime) -> int:
    # Pauses are not timestamped, so this matches what a reloading client computes.
    if row.completed:
        return 0
    elapsed = int((now - row.start_time).total_seconds())
    return max(0, minutes_to_seconds(float(row.duration_minutes)) - max(0, elapsed))


class TimerEngine:
    def __init__(self, db: PomoflowDB, clock: Clock | None = None) -> None:
        self.db = db
        self.clock = clock or RealClock()

    def get_active(self, user_id: str) -> TimerPhaseRow | None:
        return self.db.find_active_phase(user_id)

    def start(self, user_id: str, payload: dict[str, Any]) -> TimerPhaseRow:
        spec = build_phase_spec(payload)
        self._check_template(user_id, spec.session_template_id)
        row = self.db.insert_phase(self._new_phase(user_id, spec))
        logger.info(
            "user %s started %s phase %s (cycle %d/%d, group %s)",
            user_id,
            row.phase,
            row.id,
            row.current_cycle,
            row.target_cycles,
            row.session_group_id,
        )
        return row

    def pause(self, user_id: str) -> TimerPhaseRow:
        active = self._ensure_active(user_id, "pause")
        return self._require(self.db.set_paused(active.id, user_id, True))

    def resume(self, user_id: str) -> TimerPhaseRow:
        active = self._ensure_active(user_id, "resume")
        return self._require(self.db.set_paused(active.id, user_id, False))

    def stop(self, user_id: str) -> TimerPhaseRow:
        active = self._ensure_active(user_id, "stop")
        row = self._require(self.db.mark_completed(active.id, user_id, self.clock.now()))
        logger.info("user %s stopped phase %s (group %s)", user_id, row.id, row.session_group_id)
        return row

    def complete(self, user_id: str, timer_id: Any) -> TimerPhaseRow:
        phase_id = parse_row_id(timer_id, "timer_id")
        existing = self.db.get_phase(phase_id, user_id)
        if existing is None:
            raise NotFoundError("Timer session not found")
        if existing.completed:
            return existing
        row = self._require(self.db.mark_completed(phase_id, user_id, self.clock.now()))
        logger.info("user %s completed %s phase %s", user_id, row.phase, row.id)
        return row

    def update_notes(self, user_id: str, timer_id: Any, notes: str | None) -> TimerPhaseRow:
        phase_id = parse_row_id(timer_id, "timer_id")
        if self.db.get_phase(phase_id, user_id) is None:
            raise NotFoundError("Timer session not found")
        return self._require(self.db.update_notes(phase_id, user_id, notes))

    def get_history(self, user_id: str, limit: Any = None) -> list[TimerPhaseRow]:
        number = as_number(limit if limit is not None else DEFAULT_HISTORY_LIMIT)
        safe_limit = DEFAULT_HISTORY_LIMIT if number is None else int(min(MAX_HISTORY_LIMIT, max(1, number)))
        return self.db.list_history(user_id, safe_limit)

    def transition(
        self,
        user_id: str,
        completed_timer_id: Any,
        next_payload: dict[str, Any] | None,
    ) -> TransitionResult:
        """Complete one phase and start the next in a single transaction.

        ``next_payload=None`` ends the run after completing the phase. Missing
        run fields (group, template, target, cycle) carry over from the finished
        phase, with the cycle advanced when a focus block finished.
        """
        phase_id = parse_row_id(completed_timer_id, "timer_id")
        existing = self.db.get_phase(phase_id, user_id)
        if existing is None:
            raise NotFoundError("Timer session not found")
        if existing.completed:
            raise ValidationError("Timer session already completed")

        new_phase = None
        if next_payload is not None:
            spec = build_phase_spec(inherit_from(existing, next_payload))
            self._check_template(user_id, spec.session_template_id)
            new_phase = self._new_phase(user_id, spec)

        completed, started = self.db.complete_and_insert(phase_id, user_id, self.clock.now(), new_phase)
        result = TransitionResult(completed=self._require(completed), started=started)
        if started is None:
            logger.info("user %s finished run with phase %s", user_id, phase_id)
        else:
            logger.info(
                "user %s moved from %s phase %s to %s phase %s",
                user_id,
                existing.phase,
                phase_id,
                started.phase,
                started.id,
            )
        return result

    def advance(self, user_id: str, timer_id: Any) -> TransitionResult:
        phase_id = parse_row_id(timer_id, "timer_id")
        existing = self.db.get_phase(phase_id, user_id)
        if existing is None:
            raise NotFoundError("Timer session not found")

        spec = plan_next_phase(existing, self.durations_for(user_id, existing))
        next_payload = None if spec is None else vars(spec)
        return self.transition(user_id, phase_id, next_payload)

    def durations_for(self, user_id: str, row: TimerPhaseRow) -> PhaseDurations:
        if row.session_template_id is None:
            return PhaseDurations()
        template = self.db.get_template(row.session_template_id, user_id)
        if template is None:
            return PhaseDurations()
        return PhaseDurations(
            focus_minutes=template.focus_duration,
            short_break_minutes=template.break_duration,
        )

    def _new_phase(self, user_id: str, spec: PhaseSpec) -> NewPhase:
        return NewPhase(
            user_id=user_id,
            session_template_id=spec.session_template_id,
            duration_minutes=spec.duration_minutes,
            phase=spec.phase,
            current_cycle=spec.current_cycle,
            target_cycles=spec.target_cycles,
            session_group_id=spec.session_group_id,
            started_at=self.clock.now(),
        )

    def _check_template(self, user_id: str, template_id: int | None) -> None:
        if template_id is not None and self.db.get_template(template_id, user_id) is None:
            raise ValidationError("Invalid session_template_id")

    def _ensure_active(self, user_id: str, action: str) -> TimerPhaseRow:
        active = self.db.find_active_phase(user_id)
        if active is None:
            raise NotFoundError(f"No active timer to {action}")
        return active

    @staticmethod
    def _require(row: TimerPhaseRow | None) -> TimerPhaseRow:
        if row is None:
            raise NotFoundError("Timer session not found")
        return row
