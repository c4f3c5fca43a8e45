from types import SimpleNamespace

import pytest

from app.domain.approval import ApprovalStatus, assessment_workflow, template_workflow
from app.domain.visibility import audit_action, ensure_toggle
from app.infrastructure.exceptions import StateError, ValidationError


def make_template(status="pending"):
    question = SimpleNamespace(status="pending_approval")
    return SimpleNamespace(
        approval_status=status,
        status="pending_approval",
        approved_by=None,
        approved_at=None,
        approval_comments=None,
        updated_by=None,
        updated_at=None,
        categories=[SimpleNamespace(questions=[question])],
    )


def make_assessment(status="pending"):
    return SimpleNamespace(
        approval_status=status,
        approved_by=None,
        approved_at=None,
        rejected_by=None,
        rejected_at=None,
        rejection_remarks=None,
        updated_by=None,
        updated_at=None,
    )


class TestTemplateWorkflow:
    def test_approve_marks_questions_approved(self):
        tpl = template_workflow.approve(make_template(), "bob", "fine")
        assert tpl.approval_status == ApprovalStatus.APPROVED
        assert tpl.status == "active"
        assert tpl.approved_by == "bob"
        assert tpl.approval_comments == "fine"
        assert tpl.categories[0].questions[0].status == "approved"

    def test_reject_requires_comments(self):
        with pytest.raises(ValidationError):
            template_workflow.reject(make_template(), "bob", "  ")

    def test_approve_requires_actor(self):
        with pytest.raises(ValidationError):
            template_workflow.approve(make_template(), "")

    def test_cannot_decide_twice(self):
        tpl = template_workflow.approve(make_template(), "bob")
        with pytest.raises(StateError, match="already approved"):
            template_workflow.approve(tpl, "bob")
        with pytest.raises(StateError, match="Cannot move"):
            template_workflow.reject(tpl, "bob", "late")

    @pytest.mark.parametrize("status", ["pending", "approved", "rejected"])
    def test_resubmit_always_returns_to_pending(self, status):
        tpl = make_template(status)
        tpl.approved_by = "bob"
        tpl.approval_comments = "old"
        template_workflow.resubmit(tpl, "carol")
        assert tpl.approval_status == "pending"
        assert tpl.status == "pending_approval"
        assert tpl.approved_by is None
        assert tpl.approval_comments is None
        assert tpl.updated_by == "carol"


class TestAssessmentWorkflow:
    def test_reject_then_resubmit(self):
        row = assessment_workflow.reject(make_assessment(), "bob", "redo")
        assert row.approval_status == "rejected"
        assert row.rejection_remarks == "redo"
        assert row.approved_by is None

        assessment_workflow.resubmit(row, "alice")
        assert row.approval_status == "pending"
        assert row.rejection_remarks is None
        assert row.rejected_by is None

    def test_reject_requires_remarks(self):
        with pytest.raises(ValidationError) as exc:
            assessment_workflow.reject(make_assessment(), "bob", None)
        assert exc.value.field == "remarks"

    def test_approved_is_final(self):
        row = assessment_workflow.approve(make_assessment(), "bob")
        assert row.approved_by == "bob"
        for action in (
            lambda: assessment_workflow.reject(row, "bob", "no"),
            lambda: assessment_workflow.resubmit(row, "bob"),
        ):
            with pytest.raises(StateError):
                action()

    def test_pending_cannot_be_resubmitted(self):
        with pytest.raises(StateError, match="already pending"):
            assessment_workflow.resubmit(make_assessment(), "alice")

    def test_unknown_status_is_a_state_error(self):
        with pytest.raises(StateError):
            assessment_workflow.approve(make_assessment("archived"), "bob")


class TestVisibility:
    def test_redundant_toggle_raises(self):
        with pytest.raises(StateError, match="already hidden"):
            ensure_toggle("Template", True, True)
        with pytest.raises(StateError, match="already visible"):
            ensure_toggle("Template", False, False)

    def test_opposite_toggle_passes(self):
        ensure_toggle("Template", False, True)
        ensure_toggle("Template", True, False)

    def test_audit_action_names(self):
        assert audit_action("Customer Assessment", True) == "Customer Assessment Hidden"
        assert audit_action("Template", False) == "Template Made Visible"
