from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, Response

from ...schedule import ScheduleService
from ...timer_engine import parse_row_id
from ..deps import get_current_user_id, get_schedule_service
from ..schemas import ScheduleIn, ScheduleOut

router = APIRouter(prefix="/api", tags=["schedule"])


@router.get("/schedule", response_model=list[ScheduleOut])
def list_schedule(
    start: str | None = Query(default=None, alias="from"),
    end: str | None = Query(default=None, alias="to"),
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleOut]:
    return [ScheduleOut(**asdict(item)) for item in service.list(user_id, start, end)]


@router.get("/schedule/{scheduled_id}", response_model=ScheduleOut)
def get_scheduled(
    scheduled_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    return ScheduleOut(**asdict(service.get(user_id, parse_row_id(scheduled_id, "id"))))


@router.post("/schedule", response_model=ScheduleOut, status_code=201)
def create_scheduled(
    payload: ScheduleIn,
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    return ScheduleOut(**asdict(service.create(user_id, payload.model_dump())))


@router.put("/schedule/{scheduled_id}", response_model=ScheduleOut)
def update_scheduled(
    scheduled_id: str,
    payload: ScheduleIn,
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleOut:
    item = service.update(user_id, parse_row_id(scheduled_id, "id"), payload.model_dump())
    return ScheduleOut(**asdict(item))


@router.delete("/schedule/{scheduled_id}", status_code=204)
def delete_scheduled(
    scheduled_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScheduleService = Depends(get_schedule_service),
) -> Response:
    service.delete(user_id, parse_row_id(scheduled_id, "id"))
    return Response(status_code=204)
