"""
Import of historical template, assessment and customer documents.

Older records were stored as loose JSON documents. Their identifiers are
document ids (plain strings or ``{"$oid": ...}``), dates may be wrapped in
``{"$date": ...}`` and the template name of an assessment was written under
several different keys. The import maps all of that onto the relational
schema once, so the request path only ever reads ``assessment_template_name``.

Stored scores of historical assessments are kept as they were recorded; they
are not recomputed against the current template.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pandas as pd
from sqlalchemy.orm import Session

from app.application.templates import new_identifier
from app.domain.approval import ApprovalStatus, TemplateStatus
from app.domain.schemas import normalize_nic
from app.domain.scoring import normalize_customer_type, rating_bracket
from app.infrastructure.logging import get_logger
from app.infrastructure.models import (
    AssessmentAnswerORM,
    CategoryScoreORM,
    CustomerAssessmentORM,
    CustomerORM,
    RatingTemplateORM,
    TemplateAnswerORM,
    TemplateCategoryORM,
    TemplateQuestionORM,
    utcnow,
)

logger = get_logger(__name__)

TEMPLATE_NAME_KEYS = (
    "assessmentTemplateName",
    "templateName",
    "template_name",
    "ratingTemplateName",
)
NESTED_TEMPLATE_KEYS = ("template", "assessmentTemplate")


def canonical_template_name(doc: Mapping[str, Any]) -> str:
    """
    First non-empty template name found on a legacy assessment document.

    >>> canonical_template_name({"template": {"name": "Retail"}})
    'Retail'
    """
    for key in TEMPLATE_NAME_KEYS:
        value = doc.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    for key in NESTED_TEMPLATE_KEYS:
        nested = doc.get(key)
        if isinstance(nested, Mapping):
            value = nested.get("name")
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""


def legacy_id(value: Any) -> str | None:
    if isinstance(value, Mapping):
        value = value.get("$oid", value.get("id", value.get("_id")))
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def legacy_datetime(value: Any) -> datetime | None:
    """Naive UTC datetime from an ISO string, epoch millis or ``{"$date": ...}``."""
    if isinstance(value, Mapping):
        value = value.get("$date")
    if value in (None, ""):
        return None
    if isinstance(value, int | float):
        ts = pd.to_datetime(value, unit="ms", utc=True)
    else:
        ts = pd.to_datetime(value, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.tz_convert(None).to_pydatetime()


def _number(value: Any) -> float | None:
    if isinstance(value, Mapping):
        value = value.get("$numberDouble", value.get("$numberInt"))
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _dual(value: Any) -> tuple[float | None, float | None]:
    if isinstance(value, Mapping):
        return _number(value.get("new")), _number(value.get("existing"))
    single = _number(value)
    return single, single


def _status(value: Any, allowed: set[str], default: str) -> str:
    text = str(value or "").strip().lower()
    return text if text in allowed else default


@dataclass
class ImportReport:
    templates: int = 0
    assessments: int = 0
    customers: int = 0
    skipped: list[dict[str, Any]] = field(default_factory=list)

    def skip(self, kind: str, ref: Any, reason: str) -> None:
        logger.warning(f"Skipping legacy {kind} {ref}: {reason}")
        self.skipped.append({"kind": kind, "ref": ref, "reason": reason})


def template_from_document(doc: Mapping[str, Any]) -> RatingTemplateORM:
    now = utcnow()
    approval = _status(
        doc.get("approvalStatus"), {s.value for s in ApprovalStatus}, ApprovalStatus.PENDING.value
    )
    status = {
        ApprovalStatus.APPROVED.value: TemplateStatus.ACTIVE.value,
        ApprovalStatus.REJECTED.value: TemplateStatus.REJECTED.value,
    }.get(approval, TemplateStatus.PENDING_APPROVAL.value)
    question_status = (
        ApprovalStatus.APPROVED.value
        if approval == ApprovalStatus.APPROVED.value
        else TemplateStatus.PENDING_APPROVAL.value
    )

    tpl = RatingTemplateORM(
        name=str(doc.get("name") or "").strip() or "Untitled template",
        status=status,
        approval_status=approval,
        approval_comments=doc.get("approvalComments"),
        created_by=doc.get("createdBy"),
        created_at=legacy_datetime(doc.get("createdAt")) or now,
        updated_by=doc.get("updatedBy"),
        updated_at=legacy_datetime(doc.get("updatedAt")) or now,
        approved_by=doc.get("approvedBy"),
        approved_at=legacy_datetime(doc.get("approvedAt")),
        is_deleted=bool(doc.get("isDeleted", False)),
    )
    for c_pos, cat in enumerate(doc.get("categories") or []):
        cat_row = TemplateCategoryORM(
            category_id=legacy_id(cat.get("categoryId")) or new_identifier(),
            category_name=str(cat.get("categoryName") or ""),
            position=c_pos,
        )
        for q_pos, q in enumerate(cat.get("questions") or []):
            weight_new, weight_existing = _dual(q.get("proposedWeight"))
            q_row = TemplateQuestionORM(
                question_id=legacy_id(q.get("questionId")) or new_identifier(),
                text=str(q.get("text") or ""),
                weight_new=weight_new,
                weight_existing=weight_existing,
                status=question_status,
                position=q_pos,
            )
            for a_pos, a in enumerate(q.get("answers") or []):
                score_new, score_existing = _dual(a.get("score"))
                q_row.answers.append(
                    TemplateAnswerORM(
                        answer_id=legacy_id(a.get("answerId")) or new_identifier(),
                        text=str(a.get("text") or ""),
                        score_new=score_new,
                        score_existing=score_existing,
                        position=a_pos,
                    )
                )
            cat_row.questions.append(q_row)
        tpl.categories.append(cat_row)
    return tpl


def assessment_from_document(
    doc: Mapping[str, Any], template_ids: Mapping[str, int]
) -> CustomerAssessmentORM:
    now = utcnow()
    customer_type = normalize_customer_type(doc.get("customerType"))
    if customer_type not in ("new", "existing"):
        customer_type = "new"
    approval = _status(
        doc.get("approvalStatus"), {s.value for s in ApprovalStatus}, ApprovalStatus.PENDING.value
    )
    total = _number(doc.get("totalScore")) or 0.0
    remarks = doc.get("rejectionRemarks")
    if approval == ApprovalStatus.REJECTED.value and not remarks:
        remarks = "Imported without remarks"
    if approval != ApprovalStatus.REJECTED.value:
        remarks = None

    row = CustomerAssessmentORM(
        customer_name=str(doc.get("customerName") or ""),
        customer_id=str(doc.get("customerId") or ""),
        nic=normalize_nic(doc.get("nic") or ""),
        customer_type=customer_type,
        assessment_template_id=template_ids.get(legacy_id(doc.get("assessmentTemplateId")) or ""),
        assessment_template_name=canonical_template_name(doc),
        total_score=total,
        rating=str(doc.get("rating") or rating_bracket(total)),
        approval_status=approval,
        rejection_remarks=remarks,
        approved_by=doc.get("approvedBy") if approval == ApprovalStatus.APPROVED.value else None,
        approved_at=legacy_datetime(doc.get("approvedAt")),
        rejected_by=doc.get("rejectedBy") if approval == ApprovalStatus.REJECTED.value else None,
        rejected_at=legacy_datetime(doc.get("rejectedAt")),
        assessed_by=doc.get("assessedBy"),
        assessment_date=legacy_datetime(doc.get("assessmentDate")) or now,
        created_at=legacy_datetime(doc.get("createdAt")) or now,
        updated_at=legacy_datetime(doc.get("updatedAt")) or now,
        is_deleted=bool(doc.get("isDeleted", False)),
    )
    row.answers = [
        AssessmentAnswerORM(
            question_id=str(legacy_id(a.get("questionId")) or ""),
            answer_id=str(legacy_id(a.get("answerId")) or ""),
            customer_type=a.get("customerType") or customer_type,
            score=_number(a.get("score")),
            weighted_score=_number(a.get("weightedScore")),
            position=pos,
        )
        for pos, a in enumerate(doc.get("answers") or [])
    ]
    row.category_scores = [
        CategoryScoreORM(
            category_name=str(c.get("categoryName") or ""),
            score=_number(c.get("score")) or 0.0,
            position=pos,
        )
        for pos, c in enumerate(doc.get("categoryScores") or [])
        if isinstance(c, Mapping)
    ]
    return row


def customer_from_document(doc: Mapping[str, Any]) -> CustomerORM:
    now = utcnow()
    return CustomerORM(
        customer_name=str(doc.get("customerName") or ""),
        customer_id=str(doc.get("customerId") or ""),
        nic=normalize_nic(doc.get("nic") or ""),
        contact_number=doc.get("contactNumber"),
        email=doc.get("email"),
        address=doc.get("address"),
        is_deleted=bool(doc.get("isDeleted", False)),
        created_at=legacy_datetime(doc.get("createdAt")) or now,
        updated_at=legacy_datetime(doc.get("updatedAt")) or now,
    )


def import_documents(session: Session, payload: Mapping[str, Any]) -> ImportReport:
    """
    Insert legacy documents. Templates go first so assessments can be linked.

    ``payload`` holds ``templates``, ``customerAssessments`` and ``customers``
    lists; any of them may be missing. The caller commits.
    """
    report = ImportReport()
    template_ids: dict[str, int] = {}

    for doc in payload.get("templates") or []:
        tpl = template_from_document(doc)
        session.add(tpl)
        session.flush()
        ref = legacy_id(doc.get("_id"))
        if ref:
            template_ids[ref] = tpl.id
        report.templates += 1

    seen_customers: set[str] = set()
    seen_nics: set[str] = set()
    for doc in payload.get("customers") or []:
        customer = customer_from_document(doc)
        if not customer.customer_id:
            report.skip("customer", legacy_id(doc.get("_id")), "missing customerId")
            continue
        if not customer.nic:
            report.skip("customer", customer.customer_id, "missing NIC")
            continue
        if customer.customer_id in seen_customers or customer.nic in seen_nics:
            report.skip("customer", customer.customer_id, "duplicate customerId or NIC")
            continue
        seen_customers.add(customer.customer_id)
        seen_nics.add(customer.nic)
        session.add(customer)
        report.customers += 1

    for doc in payload.get("customerAssessments") or []:
        row = assessment_from_document(doc, template_ids)
        if not row.customer_id:
            report.skip("assessment", legacy_id(doc.get("_id")), "missing customerId")
            continue
        if row.assessment_template_id is None:
            logger.info(
                f"Legacy assessment for {row.customer_id} has no matching template; "
                f"keeping name '{row.assessment_template_name}'"
            )
        session.add(row)
        report.assessments += 1

    session.flush()
    return report
