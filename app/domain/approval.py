"""
Approval lifecycle shared by rating templates and customer assessments.

Both entities move between ``pending``, ``approved`` and ``rejected``; they
differ only in which transitions are allowed and in what each decision
writes onto the record. ``ApprovalWorkflow`` holds the transition table and
checks every move before anything is mutated; subclasses supply the writes.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from ..infrastructure.exceptions import StateError, ValidationError
from ..infrastructure.models import utcnow


class ApprovalStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TemplateStatus(StrEnum):
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    REJECTED = "rejected"


class ApprovalWorkflow[T]:
    """
    Generic pending/approved/rejected state machine.

    A move to the current status is reported as "already <status>" unless
    the table lists it explicitly (template edits re-enter ``pending``).
    """

    entity_name: str = "Record"
    remarks_field: str = "comments"
    transitions: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {}

    def status_of(self, entity: T) -> ApprovalStatus:
        raw = getattr(entity, "approval_status", None)
        try:
            return ApprovalStatus(raw)
        except ValueError:
            raise StateError(
                f"{self.entity_name} has unknown approval status {raw!r}", current_state=raw
            ) from None

    def can_transition(self, entity: T, target: ApprovalStatus) -> bool:
        return target in self.transitions.get(self.status_of(entity), frozenset())

    def check(self, entity: T, target: ApprovalStatus) -> None:
        if self.can_transition(entity, target):
            return
        current = self.status_of(entity)
        if target == current:
            raise StateError(f"{self.entity_name} is already {current}", current_state=current)
        raise StateError(
            f"Cannot move {self.entity_name.lower()} from {current} to {target}",
            current_state=current,
        )

    # -------- Decisions --------

    def approve(
        self, entity: T, actor: str, comments: str | None = None, at: datetime | None = None
    ) -> T:
        actor = self._require_actor(actor)
        self.check(entity, ApprovalStatus.APPROVED)
        self.on_approve(entity, actor, _clean(comments), at or utcnow())
        entity.approval_status = ApprovalStatus.APPROVED.value  # type: ignore[attr-defined]
        return entity

    def reject(self, entity: T, actor: str, remarks: str | None, at: datetime | None = None) -> T:
        actor = self._require_actor(actor)
        cleaned = _clean(remarks)
        if not cleaned:
            raise ValidationError(
                self.remarks_field,
                f"{self.remarks_field.capitalize()} are required when rejecting",
                remarks,
            )
        self.check(entity, ApprovalStatus.REJECTED)
        self.on_reject(entity, actor, cleaned, at or utcnow())
        entity.approval_status = ApprovalStatus.REJECTED.value  # type: ignore[attr-defined]
        return entity

    def resubmit(self, entity: T, actor: str | None, at: datetime | None = None) -> T:
        self.check(entity, ApprovalStatus.PENDING)
        self.on_resubmit(entity, actor, at or utcnow())
        entity.approval_status = ApprovalStatus.PENDING.value  # type: ignore[attr-defined]
        return entity

    # -------- Hooks --------

    def on_approve(self, entity: T, actor: str, comments: str | None, at: datetime) -> None:
        pass

    def on_reject(self, entity: T, actor: str, remarks: str, at: datetime) -> None:
        pass

    def on_resubmit(self, entity: T, actor: str | None, at: datetime) -> None:
        pass

    def _require_actor(self, actor: str | None) -> str:
        cleaned = _clean(actor)
        if not cleaned:
            raise ValidationError("approvedBy", "Approver is required", actor)
        return cleaned


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class TemplateWorkflow(ApprovalWorkflow[Any]):
    """Templates: decisions only from pending; any edit goes back to pending."""

    entity_name = "Template"
    remarks_field = "comments"
    transitions = {
        ApprovalStatus.PENDING: frozenset(
            {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.PENDING}
        ),
        ApprovalStatus.APPROVED: frozenset({ApprovalStatus.PENDING}),
        ApprovalStatus.REJECTED: frozenset({ApprovalStatus.PENDING}),
    }

    def on_approve(self, entity, actor, comments, at):
        entity.status = TemplateStatus.ACTIVE.value
        entity.approved_by = actor
        entity.approved_at = at
        entity.approval_comments = comments
        for category in entity.categories:
            for question in category.questions:
                question.status = "approved"

    def on_reject(self, entity, actor, remarks, at):
        entity.status = TemplateStatus.REJECTED.value
        entity.approved_by = actor
        entity.approved_at = at
        entity.approval_comments = remarks

    def on_resubmit(self, entity, actor, at):
        entity.status = TemplateStatus.PENDING_APPROVAL.value
        entity.approval_comments = None
        entity.approved_by = None
        entity.approved_at = None
        entity.updated_by = actor
        entity.updated_at = at
        for category in entity.categories:
            for question in category.questions:
                question.status = "pending_approval"


class AssessmentWorkflow(ApprovalWorkflow[Any]):
    """Assessments: approved is final; only a rejected assessment may be resubmitted."""

    entity_name = "Assessment"
    remarks_field = "remarks"
    transitions = {
        ApprovalStatus.PENDING: frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED}),
        ApprovalStatus.REJECTED: frozenset({ApprovalStatus.PENDING}),
        ApprovalStatus.APPROVED: frozenset(),
    }

    def on_approve(self, entity, actor, comments, at):
        entity.approved_by = actor
        entity.approved_at = at
        entity.rejected_by = None
        entity.rejected_at = None
        entity.rejection_remarks = None
        entity.updated_at = at
        entity.updated_by = actor

    def on_reject(self, entity, actor, remarks, at):
        entity.rejected_by = actor
        entity.rejected_at = at
        entity.rejection_remarks = remarks
        entity.approved_by = None
        entity.approved_at = None
        entity.updated_at = at
        entity.updated_by = actor

    def on_resubmit(self, entity, actor, at):
        entity.rejection_remarks = None
        entity.rejected_by = None
        entity.rejected_at = None
        entity.updated_at = at
        entity.updated_by = actor


template_workflow = TemplateWorkflow()
assessment_workflow = AssessmentWorkflow()
