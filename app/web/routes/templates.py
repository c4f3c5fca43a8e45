from __future__ import annotations

import io
import json
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from app.application.templates import TemplateStore
from app.infrastructure.audit import AuditPublisher
from app.infrastructure.exceptions import ValidationError
from app.utils.exports import (
    XLSX_MEDIA_TYPE,
    check_export_format,
    make_template_json_export_payload,
    make_template_xlsx_export_bytes,
)
from app.web.dependencies import get_audit_publisher, get_db_session
from app.web.schemas import (
    Envelope,
    TemplateCreateRequest,
    TemplateDecisionRequest,
    TemplateOut,
    TemplateUpdateRequest,
    TemplateVisibilityRequest,
)

router = APIRouter(prefix="/api/templates", tags=["templates"])


def get_template_store(
    db: Session = Depends(get_db_session),
    audit: AuditPublisher = Depends(get_audit_publisher),
) -> TemplateStore:
    return TemplateStore(db, audit)


@router.post("", response_model=Envelope[TemplateOut], status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreateRequest, store: TemplateStore = Depends(get_template_store)
) -> Envelope[TemplateOut]:
    tpl = store.create(payload.name, payload.categories, created_by=payload.created_by)
    return Envelope(
        message="Template created and submitted for approval",
        data=TemplateOut.from_orm_template(tpl),
    )


@router.get("", response_model=Envelope[TemplateOut] | Envelope[list[TemplateOut]])
def get_templates(
    id: Optional[int] = None,
    approvalStatus: Optional[str] = None,
    store: TemplateStore = Depends(get_template_store),
):
    if id is not None:
        return Envelope[TemplateOut](data=TemplateOut.from_orm_template(store.get(id)))
    return Envelope[list[TemplateOut]](
        data=[TemplateOut.from_orm_template(t) for t in store.list(approvalStatus)]
    )


@router.get("/approvals", response_model=Envelope[list[TemplateOut]])
def list_pending_templates(
    store: TemplateStore = Depends(get_template_store),
) -> Envelope[list[TemplateOut]]:
    return Envelope(data=[TemplateOut.from_orm_template(t) for t in store.list_pending()])


@router.get("/manage", response_model=Envelope[list[TemplateOut]])
def list_managed_templates(
    store: TemplateStore = Depends(get_template_store),
) -> Envelope[list[TemplateOut]]:
    return Envelope(data=[TemplateOut.from_orm_template(t) for t in store.list_for_management()])


@router.put("", response_model=Envelope[TemplateOut])
def update_template(
    payload: TemplateUpdateRequest, store: TemplateStore = Depends(get_template_store)
) -> Envelope[TemplateOut]:
    tpl = store.update(
        payload.id,
        payload.name,
        payload.categories,
        updated_by=payload.updated_by,
        expected_version=payload.expected_version,
    )
    return Envelope(
        message="Template updated and resubmitted for approval",
        data=TemplateOut.from_orm_template(tpl),
    )


@router.delete("", response_model=Envelope[TemplateOut])
def delete_template(
    id: Optional[int] = None,
    deletedBy: Optional[str] = None,
    store: TemplateStore = Depends(get_template_store),
) -> Envelope[TemplateOut]:
    tpl = store.soft_delete(id, deleted_by=deletedBy)
    return Envelope(message="Template deleted", data=TemplateOut.from_orm_template(tpl))


@router.post("/approvals", response_model=Envelope[TemplateOut])
def decide_template(
    payload: TemplateDecisionRequest, store: TemplateStore = Depends(get_template_store)
) -> Envelope[TemplateOut]:
    if payload.target_id is None:
        raise ValidationError("templateId", "Template ID is required")
    if payload.action == "approve":
        tpl = store.approve(payload.target_id, payload.approved_by, payload.comments)
        message = "Template approved"
    elif payload.action == "reject":
        tpl = store.reject(payload.target_id, payload.approved_by, payload.comments)
        message = "Template rejected"
    else:
        raise ValidationError(
            "action", 'Action must be either "approve" or "reject"', payload.action
        )
    return Envelope(message=message, data=TemplateOut.from_orm_template(tpl))


@router.patch("/{template_id}/visibility", response_model=Envelope[TemplateOut])
def set_template_visibility(
    template_id: int,
    payload: TemplateVisibilityRequest,
    store: TemplateStore = Depends(get_template_store),
) -> Envelope[TemplateOut]:
    tpl = store.set_visibility(template_id, payload.is_hidden, actor=payload.username)
    message = "Template hidden" if tpl.is_deleted else "Template made visible"
    return Envelope(message=message, data=TemplateOut.from_orm_template(tpl))


@router.get("/{template_id}/export")
def export_template(
    template_id: int,
    format: str = "xlsx",
    store: TemplateStore = Depends(get_template_store),
):
    export_format = check_export_format(format)
    tpl = store.get(template_id)

    if export_format == "json":
        return JSONResponse(content=json.loads(make_template_json_export_payload(tpl)))

    filename = f"{'_'.join(tpl.name.split())}_template.xlsx"
    stream = io.BytesIO(make_template_xlsx_export_bytes(tpl))
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(stream, media_type=XLSX_MEDIA_TYPE, headers=headers)
