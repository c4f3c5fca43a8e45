from __future__ import annotations

import io
import json
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from app.application.assessments import AssessmentStore
from app.application.history import EnrichmentJoin
from app.domain.approval import ApprovalStatus
from app.infrastructure.audit import AuditPublisher
from app.infrastructure.exceptions import ValidationError
from app.utils.exports import (
    XLSX_MEDIA_TYPE,
    check_export_format,
    make_json_export_payload,
    make_xlsx_export_bytes,
)
from app.web.dependencies import get_audit_publisher, get_db_session
from app.web.schemas import (
    AssessmentCreateRequest,
    AssessmentDecisionRequest,
    AssessmentOut,
    AssessmentUpdateRequest,
    AssessmentVisibilityRequest,
    Envelope,
)

router = APIRouter(prefix="/api/customer-assessments", tags=["customer-assessments"])


def get_assessment_store(
    db: Session = Depends(get_db_session),
    audit: AuditPublisher = Depends(get_audit_publisher),
) -> AssessmentStore:
    return AssessmentStore(db, audit)


@router.post("", response_model=Envelope[AssessmentOut])
def create_assessment(
    payload: AssessmentCreateRequest, store: AssessmentStore = Depends(get_assessment_store)
) -> Envelope[AssessmentOut]:
    row = store.create(
        customer_name=payload.customer_name,
        customer_id=payload.customer_id,
        nic=payload.nic,
        customer_type=payload.customer_type,
        template_id=payload.assessment_template_id,
        answers=payload.answers,
        total_score=payload.total_score,
        rating=payload.rating,
        category_scores=payload.category_scores,
        assessed_by=payload.assessed_by,
    )
    return Envelope(
        message="Customer assessment submitted for approval",
        data=AssessmentOut.model_validate(row),
    )


@router.get("", response_model=Envelope[AssessmentOut] | Envelope[list[AssessmentOut]])
def get_assessments(
    id: Optional[int] = None,
    customerId: Optional[str] = None,
    status: Optional[str] = None,
    store: AssessmentStore = Depends(get_assessment_store),
):
    if id is not None:
        return Envelope[AssessmentOut](data=AssessmentOut.model_validate(store.get(id)))
    rows = store.list(customer_id=customerId, status=status)
    return Envelope[list[AssessmentOut]](data=[AssessmentOut.model_validate(r) for r in rows])


@router.get("/manage", response_model=Envelope[list[AssessmentOut]])
def list_managed_assessments(
    store: AssessmentStore = Depends(get_assessment_store),
) -> Envelope[list[AssessmentOut]]:
    return Envelope(data=[AssessmentOut.model_validate(r) for r in store.list_for_management()])


@router.patch("/visibility", response_model=Envelope[AssessmentOut])
def set_assessment_visibility(
    payload: AssessmentVisibilityRequest, store: AssessmentStore = Depends(get_assessment_store)
) -> Envelope[AssessmentOut]:
    row = store.set_visibility(payload.id, payload.is_deleted, actor=payload.username)
    message = "Assessment hidden" if row.is_deleted else "Assessment made visible"
    return Envelope(message=message, data=AssessmentOut.model_validate(row))


@router.put("/{assessment_id}", response_model=Envelope[AssessmentOut])
def edit_assessment(
    assessment_id: int,
    payload: AssessmentUpdateRequest,
    store: AssessmentStore = Depends(get_assessment_store),
) -> Envelope[AssessmentOut]:
    row = store.edit(
        assessment_id,
        answers=payload.answers,
        total_score=payload.total_score,
        rating=payload.rating,
        category_scores=payload.category_scores,
        updated_by=payload.updated_by,
        expected_version=payload.expected_version,
    )
    return Envelope(
        message="Assessment updated and resubmitted for approval",
        data=AssessmentOut.model_validate(row),
    )


@router.post("/{assessment_id}/approve", response_model=Envelope[AssessmentOut])
def decide_assessment(
    assessment_id: int,
    payload: AssessmentDecisionRequest,
    store: AssessmentStore = Depends(get_assessment_store),
) -> Envelope[AssessmentOut]:
    if payload.status == ApprovalStatus.APPROVED.value:
        row = store.approve(assessment_id, payload.approved_by)
    elif payload.status == ApprovalStatus.REJECTED.value:
        row = store.reject(assessment_id, payload.rejected_by, payload.remarks)
    else:
        raise ValidationError(
            "status", 'Invalid status. Must be "approved" or "rejected"', payload.status
        )
    return Envelope(
        message=f"Assessment {row.approval_status} successfully",
        data=AssessmentOut.model_validate(row),
    )


@router.get("/{assessment_id}/export")
def export_assessment(
    assessment_id: int,
    format: str = "json",
    db: Session = Depends(get_db_session),
):
    export_format = check_export_format(format)
    row = AssessmentStore(db).get(assessment_id)
    enriched = EnrichmentJoin(db).enrich(row)

    if export_format == "json":
        return JSONResponse(content=json.loads(make_json_export_payload(enriched)))

    filename = f"assessment_{assessment_id}.xlsx"
    stream = io.BytesIO(make_xlsx_export_bytes(enriched))
    stream.seek(0)
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(stream, media_type=XLSX_MEDIA_TYPE, headers=headers)
