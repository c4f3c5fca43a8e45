"""
Readable customer assessment history.

Stored assessments keep only raw selections (question id, answer id) and
cached scores. For display they are joined back onto the originating
template: question and answer texts, category names, weights and scores are
looked up again and the weighted score is recomputed. When the template or a
question has since disappeared the affected fields fall back to the cached
values or to empty defaults instead of failing the whole history.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from ..domain.approval import ApprovalStatus
from ..domain.models import TemplateDefinition
from ..domain.scoring import resolve_dual, weighted_score
from ..infrastructure.exceptions import CustomerNotFoundError
from ..infrastructure.logging import get_logger, log_operation
from ..infrastructure.models import CustomerAssessmentORM, CustomerORM
from ..infrastructure.repositories import AssessmentRepo, CustomerRepo, TemplateRepo
from .templates import to_definition

logger = get_logger(__name__)


@dataclass(slots=True)
class EnrichedAnswer:
    question_id: str
    answer_id: str
    question_text: str
    answer_text: str
    category: str
    score: float
    weight: float
    weighted_score: float
    customer_type: str | None


@dataclass(slots=True)
class EnrichedAssessment:
    id: int
    customer_id: str
    customer_name: str
    customer_type: str
    assessment_template_id: int | None
    assessment_template_name: str
    total_score: float
    rating: str
    category_scores: list[dict[str, Any]]
    assessed_by: str | None
    approval_status: str
    assessment_date: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    approved_at: datetime | None
    approved_by: str | None
    rejected_at: datetime | None
    rejected_by: str | None
    rejection_remarks: str | None
    template_available: bool
    answers: list[EnrichedAnswer] = field(default_factory=list)


@dataclass(slots=True)
class HistorySummary:
    total_assessments: int
    approved_count: int
    pending_count: int
    rejected_count: int
    latest_rating: str


@dataclass(slots=True)
class CustomerHistory:
    customer: CustomerORM
    assessments: list[EnrichedAssessment]
    summary: HistorySummary


def resolve_template_id(ref: Any) -> int | None:
    """
    Accept the shapes a template reference has taken over time.

    >>> resolve_template_id("12"), resolve_template_id({"id": 3}), resolve_template_id("abc")
    (12, 3, None)
    """
    if ref is None or isinstance(ref, bool):
        return None
    if isinstance(ref, int):
        return ref
    if isinstance(ref, str):
        text = ref.strip()
        return int(text) if text.isdigit() else None
    if isinstance(ref, Mapping):
        return resolve_template_id(ref.get("id"))
    return resolve_template_id(getattr(ref, "id", None))


def summarize(assessments: Iterable[Any]) -> HistorySummary:
    """Counts per approval status; latest rating comes from the first approved entry."""
    items = list(assessments)
    approved = [a for a in items if a.approval_status == ApprovalStatus.APPROVED.value]
    return HistorySummary(
        total_assessments=len(items),
        approved_count=len(approved),
        pending_count=sum(1 for a in items if a.approval_status == ApprovalStatus.PENDING.value),
        rejected_count=sum(1 for a in items if a.approval_status == ApprovalStatus.REJECTED.value),
        latest_rating=(approved[0].rating or "N/A") if approved else "N/A",
    )


class EnrichmentJoin:
    """
    Join stored selections back onto their templates.

    One instance caches templates by id, so enriching a whole history loads
    each template once.
    """

    def __init__(self, session: Session):
        self.s = session
        self.templates = TemplateRepo(session)
        self.assessments = AssessmentRepo(session)
        self.customers = CustomerRepo(session)
        self._definitions: dict[int, TemplateDefinition | None] = {}

    def template_for(self, ref: Any) -> TemplateDefinition | None:
        """Template for a reference, or None when it is unknown or deleted."""
        template_id = resolve_template_id(ref)
        if template_id is None:
            return None
        if template_id not in self._definitions:
            tpl = self.templates.get_live(template_id)
            self._definitions[template_id] = to_definition(tpl) if tpl is not None else None
        return self._definitions[template_id]

    def enrich_answer(
        self, stored: Any, definition: TemplateDefinition | None, default_type: str | None
    ) -> EnrichedAnswer:
        customer_type = stored.customer_type or default_type
        cached_score = stored.score
        cached_weighted = stored.weighted_score

        question_text = answer_text = category = ""
        weight = 0.0
        score = float(cached_score or 0)
        weighted: float | None = None

        located = definition.locate(stored.question_id) if definition is not None else None
        if located is not None:
            cat, question = located
            question_text, category = question.text, cat.name
            weight = resolve_dual(question.weight, customer_type)
            option = question.find_answer(stored.answer_id)
            if option is not None:
                answer_text = option.text
                score = resolve_dual(option.score, customer_type)
            weighted = weighted_score(score, weight)
            if cached_weighted is not None and not math.isclose(
                cached_weighted, weighted, abs_tol=1e-9
            ):
                logger.debug(
                    f"Cached weighted score {cached_weighted} for question "
                    f"{stored.question_id} differs from recomputed {weighted}"
                )
        if weighted is None:
            weighted = float(cached_weighted) if cached_weighted is not None else 0.0

        return EnrichedAnswer(
            question_id=stored.question_id,
            answer_id=stored.answer_id,
            question_text=question_text,
            answer_text=answer_text,
            category=category,
            score=score,
            weight=weight,
            weighted_score=weighted,
            customer_type=customer_type,
        )

    def enrich(self, assessment: CustomerAssessmentORM) -> EnrichedAssessment:
        definition = self.template_for(assessment.assessment_template_id)
        return EnrichedAssessment(
            id=assessment.id,
            customer_id=assessment.customer_id,
            customer_name=assessment.customer_name,
            customer_type=assessment.customer_type,
            assessment_template_id=assessment.assessment_template_id,
            assessment_template_name=assessment.assessment_template_name or "",
            total_score=assessment.total_score,
            rating=assessment.rating,
            category_scores=[
                {"categoryName": c.category_name, "score": c.score}
                for c in assessment.category_scores
            ],
            assessed_by=assessment.assessed_by,
            approval_status=assessment.approval_status,
            assessment_date=assessment.assessment_date,
            created_at=assessment.created_at,
            updated_at=assessment.updated_at,
            approved_at=assessment.approved_at,
            approved_by=assessment.approved_by,
            rejected_at=assessment.rejected_at,
            rejected_by=assessment.rejected_by,
            rejection_remarks=assessment.rejection_remarks,
            template_available=definition is not None,
            answers=[
                self.enrich_answer(a, definition, assessment.customer_type)
                for a in assessment.answers
            ],
        )

    @log_operation("customer_history")
    def history(self, customer_id: str) -> CustomerHistory:
        """Enriched visible assessments for a customer, newest first, with a summary."""
        customer = self.customers.get_live(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)

        assessments = self.assessments.list_visible(customer_id=customer_id)
        return CustomerHistory(
            customer=customer,
            assessments=[self.enrich(a) for a in assessments],
            summary=summarize(assessments),
        )
