from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Response

from ...templates import TemplateService
from ...timer_engine import parse_row_id
from ..deps import get_current_user_id, get_template_service
from ..schemas import TemplateIn, TemplateOut

router = APIRouter(prefix="/api", tags=["sessions"])


@router.get("/sessions", response_model=list[TemplateOut])
def list_templates(
    user_id: str = Depends(get_current_user_id),
    service: TemplateService = Depends(get_template_service),
) -> list[TemplateOut]:
    return [TemplateOut(**asdict(item)) for item in service.list(user_id)]


@router.get("/sessions/{template_id}", response_model=TemplateOut)
def get_template(
    template_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TemplateService = Depends(get_template_service),
) -> TemplateOut:
    item = service.get(user_id, parse_row_id(template_id, "id"))
    return TemplateOut(**asdict(item))


@router.post("/sessions", response_model=TemplateOut, status_code=201)
def create_template(
    payload: TemplateIn,
    user_id: str = Depends(get_current_user_id),
    service: TemplateService = Depends(get_template_service),
) -> TemplateOut:
    return TemplateOut(**asdict(service.create(user_id, payload.model_dump())))


@router.put("/sessions/{template_id}", response_model=TemplateOut)
def update_template(
    template_id: str,
    payload: TemplateIn,
    user_id: str = Depends(get_current_user_id),
    service: TemplateService = Depends(get_template_service),
) -> TemplateOut:
    item = service.update(user_id, parse_row_id(template_id, "id"), payload.model_dump())
    return TemplateOut(**asdict(item))


@router.delete("/sessions/{template_id}", status_code=204)
def delete_template(
    template_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TemplateService = Depends(get_template_service),
) -> Response:
    service.delete(user_id, parse_row_id(template_id, "id"))
    return Response(status_code=204)
