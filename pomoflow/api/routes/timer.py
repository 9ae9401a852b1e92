from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from ...clock import Clock
from ...db import TimerPhaseRow
from ...errors import NotFoundError, ValidationError
from ...timer_engine import TimerEngine, parse_row_id, remaining_seconds
from ..deps import get_clock, get_current_user_id, get_timer_engine
from ..schemas import (
    TimerIdRequest,
    TimerNotesRequest,
    TimerSessionOut,
    TimerStartRequest,
    TimerTransitionOut,
    TimerTransitionRequest,
)

router = APIRouter(prefix="/api", tags=["timer"])


def _out(row: TimerPhaseRow, clock: Clock) -> TimerSessionOut:
    data = asdict(row)
    if not row.completed:
        data["remaining_seconds"] = remaining_seconds(row, clock.now())
    return TimerSessionOut(**data)


@router.get("/timer/active", response_model=TimerSessionOut | None)
def active_timer(
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerSessionOut | None:
    row = engine.get_active(user_id)
    return _out(row, clock) if row is not None else None


@router.post("/timer/start", response_model=TimerSessionOut, status_code=201)
def start_timer(
    payload: TimerStartRequest,
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerSessionOut:
    return _out(engine.start(user_id, payload.model_dump()), clock)


@router.post("/timer/pause", response_model=TimerSessionOut)
def pause_timer(
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerSessionOut:
    return _out(engine.pause(user_id), clock)


@router.post("/timer/resume", response_model=TimerSessionOut)
def resume_timer(
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerSessionOut:
    return _out(engine.resume(user_id), clock)


@router.post("/timer/stop", response_model=TimerSessionOut)
def stop_timer(
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerSessionOut:
    return _out(engine.stop(user_id), clock)


@router.post("/timer/complete", response_model=TimerSessionOut)
def complete_timer(
    payload: TimerIdRequest,
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerSessionOut:
    return _out(engine.complete(user_id, payload.timer_id), clock)


@router.post("/timer/transition", response_model=TimerTransitionOut)
def transition_timer(
    payload: TimerTransitionRequest,
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerTransitionOut:
    next_payload = payload.next.model_dump() if payload.next is not None else None
    result = engine.transition(user_id, payload.completed_timer_id, next_payload)
    return TimerTransitionOut(
        completed=_out(result.completed, clock),
        started=_out(result.started, clock) if result.started is not None else None,
        run_complete=result.run_complete,
    )


@router.post("/timer/advance", response_model=TimerTransitionOut)
def advance_timer(
    payload: TimerIdRequest,
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerTransitionOut:
    result = engine.advance(user_id, payload.timer_id)
    return TimerTransitionOut(
        completed=_out(result.completed, clock),
        started=_out(result.started, clock) if result.started is not None else None,
        run_complete=result.run_complete,
    )


@router.patch("/timer/{timer_id}/notes", response_model=TimerSessionOut)
def update_notes(
    timer_id: str,
    payload: TimerNotesRequest,
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> TimerSessionOut:
    try:
        phase_id = parse_row_id(timer_id, "timer_id")
    except ValidationError as exc:
        raise NotFoundError("Timer session not found") from exc
    return _out(engine.update_notes(user_id, phase_id, payload.notes), clock)


@router.get("/timer/history", response_model=list[TimerSessionOut])
def timer_history(
    limit: str | None = None,
    user_id: str = Depends(get_current_user_id),
    engine: TimerEngine = Depends(get_timer_engine),
    clock: Clock = Depends(get_clock),
) -> list[TimerSessionOut]:
    return [_out(row, clock) for row in engine.get_history(user_id, limit)]
