"""Endpoints for managing notification templates."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from notification_engine.application import NotificationService
from notification_engine.interfaces.api.dependencies import (
    get_current_user_id,
    get_service,
    require_admin,
)
from notification_engine.interfaces.api.routes_helpers import to_http_exception
from notification_engine.interfaces.api.schemas import (
    TemplateCreate,
    TemplateRead,
    TemplateUpdate,
)

router = APIRouter(prefix="/notifications/templates", tags=["notification templates"])


@router.get("", response_model=list[TemplateRead])
def list_templates(
    _: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> list[TemplateRead]:
    return [TemplateRead.model_validate(template) for template in service.list_templates()]


@router.post("", response_model=TemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    _: int = Depends(require_admin),
    service: NotificationService = Depends(get_service),
) -> TemplateRead:
    try:
        template = service.create_template(payload.to_entity())
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return TemplateRead.model_validate(template)


@router.get("/{template_id}", response_model=TemplateRead)
def get_template(
    template_id: int,
    _: int = Depends(get_current_user_id),
    service: NotificationService = Depends(get_service),
) -> TemplateRead:
    try:
        template = service.get_template(template_id)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return TemplateRead.model_validate(template)


@router.put("/{template_id}", response_model=TemplateRead)
def update_template(
    template_id: int,
    payload: TemplateUpdate,
    _: int = Depends(require_admin),
    service: NotificationService = Depends(get_service),
) -> TemplateRead:
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key == "description"
    }
    try:
        template = service.update_template(template_id, changes)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return TemplateRead.model_validate(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: int,
    _: int = Depends(require_admin),
    service: NotificationService = Depends(get_service),
) -> Response:
    """Deactivate the template; notifications created from it are untouched."""

    try:
        service.delete_template(template_id)
    except ValueError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
