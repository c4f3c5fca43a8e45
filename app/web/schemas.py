from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.application.history import CustomerHistory
from app.infrastructure.models import ActivityLogORM, RatingTemplateORM

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


# ---------- Requests ----------


class TemplateCreateRequest(CamelModel):
    name: Optional[str] = None
    categories: Optional[list[dict[str, Any]]] = None
    created_by: Optional[str] = None


class TemplateUpdateRequest(CamelModel):
    id: Optional[int] = None
    name: Optional[str] = None
    categories: Optional[list[dict[str, Any]]] = None
    updated_by: Optional[str] = None
    expected_version: Optional[int] = None


class TemplateDecisionRequest(CamelModel):
    template_id: Optional[int] = None
    # older clients name the template "assessment" here
    assessment_id: Optional[int] = None
    action: Optional[str] = None
    approved_by: Optional[str] = None
    comments: Optional[str] = None

    @property
    def target_id(self) -> Optional[int]:
        return self.template_id if self.template_id is not None else self.assessment_id


class TemplateVisibilityRequest(CamelModel):
    is_hidden: Any = None
    username: Optional[str] = None


class CategoryCreateRequest(CamelModel):
    name: Optional[str] = None
    created_by: Optional[str] = None


class AssessmentCreateRequest(CamelModel):
    customer_name: Optional[str] = None
    customer_id: Optional[str] = None
    nic: Optional[str] = None
    customer_type: Optional[str] = None
    assessment_template_id: Optional[int] = None
    answers: Optional[list[dict[str, Any]]] = None
    total_score: Optional[float] = None
    rating: Optional[str] = None
    category_scores: Optional[list[dict[str, Any]]] = None
    assessed_by: Optional[str] = None


class AssessmentUpdateRequest(CamelModel):
    answers: Optional[list[dict[str, Any]]] = None
    total_score: Optional[float] = None
    rating: Optional[str] = None
    category_scores: Optional[list[dict[str, Any]]] = None
    updated_by: Optional[str] = None
    expected_version: Optional[int] = None


class AssessmentDecisionRequest(CamelModel):
    status: Optional[str] = None
    remarks: Optional[str] = None
    approved_by: Optional[str] = None
    rejected_by: Optional[str] = None


class AssessmentVisibilityRequest(CamelModel):
    id: Optional[int] = None
    is_deleted: Any = None
    username: Optional[str] = None


class CustomerCreateRequest(CamelModel):
    customer_name: Optional[str] = None
    customer_id: Optional[str] = None
    nic: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    created_by: Optional[str] = None


class CustomerCheckRequest(CamelModel):
    customer_id: Optional[str] = None
    nic: Optional[str] = None


# ---------- Templates ----------


class DualValueOut(CamelModel):
    new: Optional[float] = None
    existing: Optional[float] = None


class AnswerOptionOut(CamelModel):
    answer_id: str
    text: str
    score: DualValueOut


class QuestionOut(CamelModel):
    question_id: str
    text: str
    proposed_weight: DualValueOut
    status: str
    answers: list[AnswerOptionOut]


class CategoryOut(CamelModel):
    category_id: str
    category_name: str
    questions: list[QuestionOut]


class TemplateOut(CamelModel):
    id: int
    name: str
    status: str
    approval_status: str
    approval_comments: Optional[str] = None
    categories: list[CategoryOut]
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    is_deleted: bool = False
    version: int

    @classmethod
    def from_orm_template(cls, tpl: RatingTemplateORM) -> TemplateOut:
        return cls(
            id=tpl.id,
            name=tpl.name,
            status=tpl.status,
            approval_status=tpl.approval_status,
            approval_comments=tpl.approval_comments,
            categories=[
                CategoryOut(
                    category_id=c.category_id,
                    category_name=c.category_name,
                    questions=[
                        QuestionOut(
                            question_id=q.question_id,
                            text=q.text,
                            proposed_weight=DualValueOut(new=q.weight_new, existing=q.weight_existing),
                            status=q.status,
                            answers=[
                                AnswerOptionOut(
                                    answer_id=a.answer_id,
                                    text=a.text,
                                    score=DualValueOut(new=a.score_new, existing=a.score_existing),
                                )
                                for a in q.answers
                            ],
                        )
                        for q in c.questions
                    ],
                )
                for c in tpl.categories
            ],
            created_by=tpl.created_by,
            created_at=tpl.created_at,
            updated_by=tpl.updated_by,
            updated_at=tpl.updated_at,
            approved_by=tpl.approved_by,
            approved_at=tpl.approved_at,
            is_deleted=tpl.is_deleted,
            version=tpl.version,
        )


class CatalogCategoryOut(CamelModel):
    id: int
    name: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- Assessments ----------


class AssessmentAnswerOut(CamelModel):
    question_id: str
    answer_id: str
    customer_type: Optional[str] = None
    score: Optional[float] = None
    weighted_score: Optional[float] = None


class CategoryScoreOut(CamelModel):
    category_name: str
    score: float


class AssessmentOut(CamelModel):
    id: int
    customer_name: str
    customer_id: str
    nic: Optional[str] = None
    customer_type: str
    assessment_template_id: Optional[int] = None
    assessment_template_name: str = ""
    total_score: float
    rating: str
    approval_status: str
    rejection_remarks: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    assessed_by: Optional[str] = None
    assessment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    is_deleted: bool = False
    version: int
    answers: list[AssessmentAnswerOut] = Field(default_factory=list)
    category_scores: list[CategoryScoreOut] = Field(default_factory=list)


# ---------- Customers & history ----------


class CustomerOut(CamelModel):
    id: int
    customer_name: str
    customer_id: str
    nic: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None


class RosterEntryOut(CamelModel):
    customer_id: str
    customer_name: str
    nic: str
    last_assessment_date: Optional[datetime] = None


class CustomerCheckOut(CamelModel):
    status: Literal["new", "existing"]
    customer: Optional[CustomerOut] = None


class EnrichedAnswerOut(CamelModel):
    question_id: str
    answer_id: str
    question_text: str
    answer_text: str
    category: str
    score: float
    weight: float
    weighted_score: float
    customer_type: Optional[str] = None


class EnrichedAssessmentOut(CamelModel):
    id: int
    assessment_template_id: Optional[int] = None
    assessment_template_name: str
    customer_type: str
    total_score: float
    rating: str
    category_scores: list[CategoryScoreOut]
    assessed_by: Optional[str] = None
    approval_status: str
    assessment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejection_remarks: Optional[str] = None
    template_available: bool
    answers: list[EnrichedAnswerOut]


class HistorySummaryOut(CamelModel):
    total_assessments: int
    approved_count: int
    pending_count: int
    rejected_count: int
    latest_rating: str


class CustomerHistoryOut(CamelModel):
    customer: CustomerOut
    assessments: list[EnrichedAssessmentOut]
    summary: HistorySummaryOut

    @classmethod
    def from_history(cls, history: CustomerHistory) -> CustomerHistoryOut:
        return cls.model_validate(history, from_attributes=True)


# ---------- System ----------


class ActivityLogOut(CamelModel):
    id: int
    username: str
    description: str
    action: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def from_orm_log(cls, row: ActivityLogORM) -> ActivityLogOut:
        try:
            metadata = json.loads(row.metadata_json) if row.metadata_json else {}
        except json.JSONDecodeError:
            metadata = {"raw": row.metadata_json}
        return cls(
            id=row.id,
            username=row.username,
            description=row.description,
            action=row.action,
            metadata=metadata if isinstance(metadata, dict) else {"value": metadata},
            created_at=row.created_at,
        )


class HealthOut(CamelModel):
    status: Literal["ok", "degraded"]
    database: Literal["ok", "unavailable"]
    environment: str
    version: str
