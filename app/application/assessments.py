"""
Customer assessment lifecycle.

An assessment records which answer was chosen for each question of an
approved template. Scores are always computed here from the template;
totals sent by clients are only compared and logged. New assessments wait
for approval; a rejected one may be edited, which resubmits it. Approved
assessments only change visibility.
"""

from __future__ import annotations

import math
from typing import Any

from sqlalchemy.orm import Session

from ..domain.approval import ApprovalStatus, assessment_workflow
from ..domain.models import AnswerSelection, ScoreCard
from ..domain.schemas import (
    AssessmentInput,
    AssessmentScoresInput,
    SelectionInput,
    parse_or_raise,
)
from ..domain.scoring import score_selections
from ..domain.visibility import audit_action, ensure_toggle, redundant_toggle
from ..infrastructure.audit import AuditEvent, AuditPublisher
from ..infrastructure.exceptions import (
    AssessmentNotFoundError,
    StateError,
    ValidationError,
)
from ..infrastructure.logging import LogContext, log_operation
from ..infrastructure.models import (
    AssessmentAnswerORM,
    CategoryScoreORM,
    CustomerAssessmentORM,
    RatingTemplateORM,
    utcnow,
)
from ..infrastructure.repositories import AssessmentRepo, TemplateRepo
from .base import Service, check_comment_length, check_version, display_actor
from .templates import to_definition

TEMPLATE_UNAVAILABLE = (
    "Assessment template not found or not approved. Please select a valid approved template."
)


class AssessmentStore(Service):
    """
    Create, decide on, resubmit and hide customer assessments.

    Example:
        >>> store = AssessmentStore(session, audit)
        >>> a = store.create(customer_name="Jane", customer_id="C-1", nic="123456789V",
        ...                  customer_type="new", template_id=1, answers=[...])
        >>> a.total_score, a.rating
        (80.0, 'A')
    """

    workflow = assessment_workflow

    def __init__(self, session: Session, audit: AuditPublisher | None = None):
        super().__init__(session, audit)
        self.repo = AssessmentRepo(session)
        self.templates = TemplateRepo(session)

    # -------- Reads --------

    def get(self, assessment_id: Any) -> CustomerAssessmentORM:
        obj = self.repo.get_visible(assessment_id)
        if obj is None:
            raise AssessmentNotFoundError(assessment_id)
        return obj

    def list(
        self, customer_id: str | None = None, status: str | None = None
    ) -> list[CustomerAssessmentORM]:
        if status and status not in {s.value for s in ApprovalStatus}:
            raise ValidationError(
                "status", "Status must be one of pending, approved or rejected", status
            )
        return self.repo.list_visible(customer_id=customer_id, status=status)

    def list_for_management(self) -> list[CustomerAssessmentORM]:
        """Every assessment, hidden ones included."""
        return self.repo.list_all()

    # -------- Scoring --------

    def _approved_template(self, template_id: Any) -> RatingTemplateORM:
        tpl = self.templates.get_live(template_id)
        if tpl is None or tpl.approval_status != ApprovalStatus.APPROVED.value:
            raise ValidationError("assessmentTemplateId", TEMPLATE_UNAVAILABLE, template_id)
        return tpl

    def _score(
        self,
        tpl: RatingTemplateORM,
        selections: list[SelectionInput],
        customer_type: str,
    ) -> ScoreCard:
        seen: set[str] = set()
        for sel in selections:
            if sel.question_id in seen:
                raise ValidationError(
                    "answers", f"Question {sel.question_id} is answered more than once"
                )
            seen.add(sel.question_id)

        card = score_selections(
            to_definition(tpl),
            [AnswerSelection(s.question_id, s.answer_id) for s in selections],
            customer_type,
        )
        if not card.is_complete:
            unknown = ", ".join(f"{u.question_id}/{u.answer_id}" for u in card.unknown)
            raise ValidationError(
                "answers",
                f"Answers reference questions or options not in the template: {unknown}",
                [{"questionId": u.question_id, "answerId": u.answer_id} for u in card.unknown],
            )
        return card

    def _compare_client_totals(
        self, card: ScoreCard, data: AssessmentScoresInput, context: str
    ) -> None:
        if data.total_score is not None and not math.isclose(
            data.total_score, card.total_score, abs_tol=1e-6
        ):
            self.logger.warning(
                f"{context}: client total {data.total_score} replaced by computed "
                f"{card.total_score}"
            )
        if data.rating and data.rating != card.rating:
            self.logger.warning(
                f"{context}: client rating {data.rating} replaced by computed {card.rating}"
            )

    @staticmethod
    def _apply_card(row: CustomerAssessmentORM, card: ScoreCard) -> None:
        row.answers = [
            AssessmentAnswerORM(
                question_id=a.question_id,
                answer_id=a.answer_id,
                customer_type=a.customer_type,
                score=a.score,
                weighted_score=a.weighted_score,
                position=pos,
            )
            for pos, a in enumerate(card.answers)
        ]
        row.category_scores = [
            CategoryScoreORM(category_name=c.category_name, score=c.score, position=pos)
            for pos, c in enumerate(card.category_scores)
        ]
        row.total_score = card.total_score
        row.rating = card.rating

    # -------- Lifecycle --------

    @log_operation("create_assessment")
    def create(
        self,
        customer_name: str | None,
        customer_id: str | None,
        nic: str | None,
        customer_type: str | None,
        template_id: Any,
        answers: list[Any] | None,
        total_score: float | None = None,
        rating: str | None = None,
        category_scores: list[Any] | None = None,
        assessed_by: str | None = None,
    ) -> CustomerAssessmentORM:
        if template_id in (None, ""):
            raise ValidationError("assessmentTemplateId", "Assessment template is required")
        if not answers:
            raise ValidationError("answers", "Assessment answers are required")
        data = parse_or_raise(
            AssessmentInput,
            {
                "customer_name": customer_name,
                "customer_id": customer_id,
                "nic": nic,
                "customer_type": customer_type,
                "assessment_template_id": template_id,
                "answers": answers,
                "total_score": total_score,
                "rating": rating,
                "category_scores": category_scores,
                "assessed_by": assessed_by,
            },
        )
        now = utcnow()

        with LogContext(actor=assessed_by), self.transaction("create assessment"):
            tpl = self._approved_template(data.assessment_template_id)
            card = self._score(tpl, data.answers, data.customer_type)
            self._compare_client_totals(card, data, f"New assessment for {data.customer_id}")

            row = CustomerAssessmentORM(
                customer_name=data.customer_name,
                customer_id=data.customer_id,
                nic=data.nic,
                customer_type=data.customer_type,
                assessment_template_id=tpl.id,
                assessment_template_name=tpl.name,
                approval_status=ApprovalStatus.PENDING.value,
                assessed_by=data.assessed_by,
                assessment_date=now,
                created_at=now,
                updated_at=now,
                is_deleted=False,
            )
            self._apply_card(row, card)
            self.repo.add(row)

        self.logger.info(
            f"Created assessment {row.id} for customer {row.customer_id}: "
            f"{row.total_score} ({row.rating})"
        )
        self.publish(
            AuditEvent(
                username=display_actor(assessed_by),
                description=(
                    f'Created customer assessment for "{row.customer_name}" '
                    f'({row.customer_id}) using template "{row.assessment_template_name}"'
                ),
                action="customer_assessment_created",
                metadata={
                    "assessmentId": row.id,
                    "customerId": row.customer_id,
                    "totalScore": row.total_score,
                    "rating": row.rating,
                },
            )
        )
        return row

    @log_operation("approve_assessment")
    def approve(self, assessment_id: Any, approved_by: str | None) -> CustomerAssessmentORM:
        if not (approved_by or "").strip():
            raise ValidationError("approvedBy", "Approver information is required", approved_by)
        return self._decide(assessment_id, ApprovalStatus.APPROVED, approved_by, None)

    @log_operation("reject_assessment")
    def reject(
        self, assessment_id: Any, rejected_by: str | None, remarks: str | None
    ) -> CustomerAssessmentORM:
        if not (remarks or "").strip():
            raise ValidationError(
                "remarks", "Remarks are required when rejecting an assessment", remarks
            )
        if not (rejected_by or "").strip():
            raise ValidationError("rejectedBy", "Rejecter information is required", rejected_by)
        check_comment_length("remarks", remarks)
        return self._decide(assessment_id, ApprovalStatus.REJECTED, rejected_by, remarks)

    def _decide(
        self, assessment_id: Any, target: ApprovalStatus, actor: str, remarks: str | None
    ) -> CustomerAssessmentORM:
        with LogContext(actor=actor, assessment_id=assessment_id), self.transaction(
            f"{target} assessment"
        ):
            row = self.get(assessment_id)
            if target == ApprovalStatus.APPROVED:
                self.workflow.approve(row, actor)
            else:
                self.workflow.reject(row, actor, remarks)
            self.s.flush()

        verb = "Approved" if target == ApprovalStatus.APPROVED else "Rejected"
        description = f'{verb} customer assessment for "{row.customer_name}"'
        if row.rejection_remarks:
            description += f' with remarks: "{row.rejection_remarks}"'
        self.publish(
            AuditEvent(
                username=display_actor(actor),
                description=description,
                action=f"customer_assessment_{target}",
                metadata={
                    "assessmentId": row.id,
                    "customerName": row.customer_name,
                    "customerType": row.customer_type,
                    "totalScore": row.total_score,
                    "action": str(target),
                    "remarks": row.rejection_remarks,
                },
            )
        )
        return row

    @log_operation("edit_assessment")
    def edit(
        self,
        assessment_id: Any,
        answers: list[Any] | None,
        total_score: float | None = None,
        rating: str | None = None,
        category_scores: list[Any] | None = None,
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> CustomerAssessmentORM:
        """Replace the answers of a rejected assessment and resubmit it for approval."""
        if not answers:
            raise ValidationError("answers", "Assessment answers are required")
        data = parse_or_raise(
            AssessmentScoresInput,
            {
                "answers": answers,
                "total_score": total_score,
                "rating": rating,
                "category_scores": category_scores,
            },
        )

        with LogContext(actor=updated_by, assessment_id=assessment_id), self.transaction(
            "edit assessment"
        ):
            row = self.get(assessment_id)
            if row.approval_status != ApprovalStatus.REJECTED.value:
                raise StateError(
                    "Only rejected assessments can be edited. "
                    f"This assessment is {row.approval_status}",
                    current_state=row.approval_status,
                )
            check_version(row, expected_version, "Assessment")

            tpl = self.templates.get(row.assessment_template_id)
            if tpl is None:
                raise ValidationError(
                    "assessmentTemplateId",
                    "The template this assessment was based on is no longer available",
                    row.assessment_template_id,
                )
            card = self._score(tpl, data.answers, row.customer_type)
            self._compare_client_totals(card, data, f"Edit of assessment {row.id}")

            self._apply_card(row, card)
            self.workflow.resubmit(row, updated_by)
            self.s.flush()

        self.publish(
            AuditEvent(
                username=display_actor(updated_by),
                description=(
                    f'Updated and resubmitted customer assessment for "{row.customer_name}"'
                ),
                action="customer_assessment_resubmitted",
                metadata={
                    "assessmentId": row.id,
                    "totalScore": row.total_score,
                    "rating": row.rating,
                },
            )
        )
        return row

    @log_operation("set_assessment_visibility")
    def set_visibility(
        self, assessment_id: Any, hidden: bool, actor: str | None = None
    ) -> CustomerAssessmentORM:
        if assessment_id in (None, ""):
            raise ValidationError("id", "Assessment ID is required", assessment_id)
        if not isinstance(hidden, bool):
            raise ValidationError("isDeleted", "isDeleted must be a boolean value", hidden)

        row = self.repo.get(assessment_id)
        if row is None:
            raise AssessmentNotFoundError(assessment_id)

        with LogContext(actor=actor, assessment_id=assessment_id), self.transaction(
            "set assessment visibility"
        ):
            ensure_toggle("Assessment", row.is_deleted, hidden)
            if not self.repo.set_visibility(row.id, hidden, updated_at=utcnow()):
                raise redundant_toggle("Assessment", hidden)

        self.s.refresh(row)
        verb = "Hidden" if hidden else "Made visible"
        description = (
            f'{verb} customer assessment: "{row.customer_name}" ({row.customer_id})'
        )
        if row.assessment_template_name:
            description += f' using template "{row.assessment_template_name}"'
        self.publish(
            AuditEvent(
                username=display_actor(actor),
                description=description,
                action=audit_action("Customer Assessment", hidden),
                metadata={"assessmentId": row.id, "isDeleted": hidden},
            )
        )
        return row
