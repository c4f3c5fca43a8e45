"""
Rating template authoring and approval.

Templates are created and edited by administrators, then approved or
rejected by an approver. Any edit sends the template back to the approval
queue. Only approved, visible templates can be used for customer
assessments.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from ..domain.approval import ApprovalStatus, TemplateStatus, template_workflow
from ..domain.models import (
    AnswerOption,
    Category,
    DualValue,
    Question,
    TemplateDefinition,
)
from ..domain.schemas import CategoryInput, TemplateInput, parse_or_raise
from ..domain.visibility import audit_action, ensure_toggle, redundant_toggle
from ..infrastructure.audit import AuditEvent, AuditPublisher
from ..infrastructure.exceptions import (
    ConflictError,
    StateError,
    TemplateNotFoundError,
    ValidationError,
)
from ..infrastructure.logging import LogContext, log_operation
from ..infrastructure.models import (
    RatingTemplateORM,
    TemplateAnswerORM,
    TemplateCategoryORM,
    TemplateQuestionORM,
    utcnow,
)
from ..infrastructure.repositories import TemplateRepo
from .base import Service, check_comment_length, check_version, display_actor


def new_identifier() -> str:
    return uuid4().hex[:24]


def build_categories(categories: list[CategoryInput]) -> list[TemplateCategoryORM]:
    """Fresh category/question/answer rows in submitted order; missing ids are generated."""
    rows: list[TemplateCategoryORM] = []
    for c_pos, category in enumerate(categories):
        cat_row = TemplateCategoryORM(
            category_id=category.category_id or new_identifier(),
            category_name=category.category_name,
            position=c_pos,
        )
        for q_pos, question in enumerate(category.questions):
            q_row = TemplateQuestionORM(
                question_id=question.question_id or new_identifier(),
                text=question.text,
                weight_new=question.proposed_weight.new,
                weight_existing=question.proposed_weight.existing,
                status=TemplateStatus.PENDING_APPROVAL.value,
                position=q_pos,
            )
            q_row.answers = [
                TemplateAnswerORM(
                    answer_id=answer.answer_id or new_identifier(),
                    text=answer.text,
                    score_new=answer.score.new,
                    score_existing=answer.score.existing,
                    position=a_pos,
                )
                for a_pos, answer in enumerate(question.answers)
            ]
            cat_row.questions.append(q_row)
        rows.append(cat_row)
    return rows


def to_definition(tpl: RatingTemplateORM) -> TemplateDefinition:
    """Scoring view of a stored template."""
    return TemplateDefinition(
        id=tpl.id,
        name=tpl.name,
        categories=[
            Category(
                category_id=c.category_id,
                name=c.category_name,
                questions=[
                    Question(
                        question_id=q.question_id,
                        text=q.text,
                        weight=DualValue(q.weight_new, q.weight_existing),
                        status=q.status,
                        answers=[
                            AnswerOption(
                                answer_id=a.answer_id,
                                text=a.text,
                                score=DualValue(a.score_new, a.score_existing),
                            )
                            for a in q.answers
                        ],
                    )
                    for q in c.questions
                ],
            )
            for c in tpl.categories
        ],
    )


class TemplateStore(Service):
    """
    Create, edit, decide on and hide rating templates.

    Example:
        >>> store = TemplateStore(session, audit)
        >>> tpl = store.create("Retail", categories, created_by="alice")
        >>> store.approve(tpl.id, "bob")
    """

    workflow = template_workflow

    def __init__(self, session: Session, audit: AuditPublisher | None = None):
        super().__init__(session, audit)
        self.repo = TemplateRepo(session)

    # -------- Reads --------

    def get(self, template_id: Any) -> RatingTemplateORM:
        tpl = self.repo.get_live(template_id)
        if tpl is None:
            raise TemplateNotFoundError(template_id)
        return tpl

    def _load(self, template_id: Any) -> RatingTemplateORM:
        """Stored template whatever its visibility; writes are not blocked by hiding."""
        tpl = self.repo.get(template_id)
        if tpl is None:
            raise TemplateNotFoundError(template_id)
        return tpl

    def list(self, approval_status: str | None = None) -> list[RatingTemplateORM]:
        return self.repo.list_live(approval_status)

    def list_pending(self) -> list[RatingTemplateORM]:
        """Approval queue."""
        return self.repo.list_live(ApprovalStatus.PENDING.value)

    def list_for_management(self) -> list[RatingTemplateORM]:
        """Decided templates, hidden ones included."""
        return self.repo.list_by_approval(
            [ApprovalStatus.APPROVED.value, ApprovalStatus.REJECTED.value], include_hidden=True
        )

    # -------- Authoring --------

    @log_operation("create_template")
    def create(
        self, name: str | None, categories: list[Any] | None, created_by: str | None = None
    ) -> RatingTemplateORM:
        data = parse_or_raise(TemplateInput, {"name": name, "categories": categories})
        now = utcnow()

        with LogContext(actor=created_by), self.transaction("create template"):
            if self.repo.find_live_by_name(data.name) is not None:
                raise ConflictError(f'A template named "{data.name}" already exists')
            tpl = RatingTemplateORM(
                name=data.name,
                status=TemplateStatus.PENDING_APPROVAL.value,
                approval_status=ApprovalStatus.PENDING.value,
                created_by=created_by,
                created_at=now,
                updated_by=created_by,
                updated_at=now,
                is_deleted=False,
            )
            tpl.categories = build_categories(data.categories)
            self.repo.add(tpl)

        self.logger.info(f"Created template '{tpl.name}' with ID {tpl.id}")
        self.publish(
            AuditEvent(
                username=display_actor(created_by),
                description=f'Created assessment template "{tpl.name}"',
                action="template_created",
                metadata={"templateId": tpl.id, "templateName": tpl.name},
            )
        )
        return tpl

    @log_operation("update_template")
    def update(
        self,
        template_id: Any,
        name: str | None,
        categories: list[Any] | None,
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> RatingTemplateORM:
        """Replace name and content; the template goes back to pending approval."""
        if template_id in (None, ""):
            raise ValidationError("id", "Template ID is required", template_id)
        data = parse_or_raise(TemplateInput, {"name": name, "categories": categories})

        with LogContext(actor=updated_by, template_id=template_id), self.transaction(
            "update template"
        ):
            tpl = self._load(template_id)
            check_version(tpl, expected_version, "Template")
            if self.repo.find_live_by_name(data.name, exclude_id=tpl.id) is not None:
                raise ConflictError(f'A template named "{data.name}" already exists')

            tpl.name = data.name
            tpl.categories = build_categories(data.categories)
            self.workflow.resubmit(tpl, updated_by)
            self.s.flush()

        self.publish(
            AuditEvent(
                username=display_actor(updated_by),
                description=f'Updated assessment template "{tpl.name}"',
                action="template_updated",
                metadata={"templateId": tpl.id, "templateName": tpl.name},
            )
        )
        return tpl

    # -------- Approval --------

    @log_operation("approve_template")
    def approve(
        self, template_id: Any, approved_by: str | None, comments: str | None = None
    ) -> RatingTemplateORM:
        return self._decide(template_id, "approve", approved_by, comments)

    @log_operation("reject_template")
    def reject(
        self, template_id: Any, approved_by: str | None, comments: str | None
    ) -> RatingTemplateORM:
        if not (comments or "").strip():
            raise ValidationError(
                "comments", "Comments are required when rejecting a template", comments
            )
        return self._decide(template_id, "reject", approved_by, comments)

    def _decide(
        self, template_id: Any, action: str, actor: str | None, comments: str | None
    ) -> RatingTemplateORM:
        if not (actor or "").strip():
            raise ValidationError("approvedBy", "Approver is required", actor)
        check_comment_length("comments", comments)

        with LogContext(actor=actor, template_id=template_id), self.transaction(
            f"{action} template"
        ):
            tpl = self._load(template_id)
            if action == "approve":
                self.workflow.approve(tpl, actor, comments)
            else:
                self.workflow.reject(tpl, actor, comments)
            self.s.flush()

        verb = "Approved" if action == "approve" else "Rejected"
        description = f'{verb} assessment template "{tpl.name}"'
        if tpl.approval_comments:
            description += f' with comments: "{tpl.approval_comments}"'
        self.publish(
            AuditEvent(
                username=display_actor(actor),
                description=description,
                action="template_approved" if action == "approve" else "template_rejected",
                metadata={
                    "templateId": tpl.id,
                    "templateName": tpl.name,
                    "comments": tpl.approval_comments,
                },
            )
        )
        return tpl

    # -------- Visibility & deletion --------

    @log_operation("set_template_visibility")
    def set_visibility(self, template_id: Any, hidden: bool, actor: str | None = None):
        """
        Hide or show a template.

        Only ``is_deleted`` changes, plus the delete markers when showing a
        soft-deleted template again. Update timestamps, approval fields and the
        version counter are left as they are.
        """
        if not isinstance(hidden, bool):
            raise ValidationError("isHidden", "isHidden must be a boolean value", hidden)

        tpl = self._load(template_id)
        restore = {} if hidden else {"deleted_at": None, "deleted_by": None}

        with LogContext(actor=actor, template_id=template_id), self.transaction(
            "set template visibility"
        ):
            ensure_toggle("Template", tpl.is_deleted, hidden)
            if not self.repo.set_visibility(tpl.id, hidden, **restore):
                raise redundant_toggle("Template", hidden)

        self.s.refresh(tpl)
        self.publish(
            AuditEvent(
                username=display_actor(actor),
                description=f'{"Hidden" if hidden else "Made visible"} template "{tpl.name}"',
                action=audit_action("Template", hidden),
                metadata={"templateId": tpl.id, "templateName": tpl.name, "isHidden": hidden},
            )
        )
        return tpl

    @log_operation("delete_template")
    def soft_delete(self, template_id: Any, deleted_by: str | None = None) -> RatingTemplateORM:
        if template_id in (None, ""):
            raise ValidationError("id", "Template ID is required", template_id)

        with LogContext(actor=deleted_by, template_id=template_id), self.transaction(
            "delete template"
        ):
            tpl = self._load(template_id)
            if tpl.deleted_at is not None:
                raise StateError("Template is already deleted", current_state="deleted")
            tpl.is_deleted = True
            tpl.deleted_at = utcnow()
            tpl.deleted_by = deleted_by
            self.s.flush()

        self.publish(
            AuditEvent(
                username=display_actor(deleted_by),
                description=f'Deleted assessment template "{tpl.name}"',
                action="template_deleted",
                metadata={"templateId": tpl.id, "templateName": tpl.name},
            )
        )
        return tpl
