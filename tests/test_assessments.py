import pytest

from app.application.assessments import AssessmentStore
from app.infrastructure.exceptions import (
    AssessmentNotFoundError,
    ConflictError,
    StateError,
    ValidationError,
)


class TestAssessmentCreation:
    def test_scores_are_computed(self, assessments, assessment_kwargs, approved_template, audit):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))

        assert row.approval_status == "pending"
        assert row.total_score == 80
        assert row.rating == "A"
        assert row.assessment_template_name == "Retail"
        assert [(c.category_name, c.score) for c in row.category_scores] == [("Income", 80)]
        assert row.answers[0].weighted_score == 80
        assert audit.actions()[-1] == "customer_assessment_created"

    def test_existing_customer_uses_existing_branch(self, assessments, assessment_kwargs, approved_template):
        row = assessments.create(
            **assessment_kwargs(approved_template.id, "A1", customer_type="Existing")
        )
        assert row.customer_type == "existing"
        assert row.total_score == 60
        assert row.rating == "B"

    def test_client_totals_are_replaced(self, assessments, assessment_kwargs, approved_template):
        row = assessments.create(
            **assessment_kwargs(approved_template.id, "A2"), total_score=99, rating="A+"
        )
        assert row.total_score == 40
        assert row.rating == "C"

    def test_template_must_be_approved(self, assessments, assessment_kwargs, templates, categories):
        pending = templates.create("Pending", categories())
        with pytest.raises(ValidationError) as exc:
            assessments.create(**assessment_kwargs(pending.id, "A1"))
        assert "not found or not approved" in exc.value.user_message

    def test_hidden_template_is_unavailable(self, assessments, assessment_kwargs, templates, approved_template):
        templates.set_visibility(approved_template.id, True)
        with pytest.raises(ValidationError):
            assessments.create(**assessment_kwargs(approved_template.id, "A1"))

    def test_unknown_answer_is_rejected(self, assessments, assessment_kwargs, approved_template):
        with pytest.raises(ValidationError) as exc:
            assessments.create(**assessment_kwargs(approved_template.id, "A9"))
        assert exc.value.field == "answers"

    def test_duplicate_question_is_rejected(self, assessments, assessment_kwargs, approved_template):
        kwargs = assessment_kwargs(approved_template.id, "A1")
        kwargs["answers"] = kwargs["answers"] * 2
        with pytest.raises(ValidationError, match="more than once"):
            assessments.create(**kwargs)

    @pytest.mark.parametrize(
        "nic, message",
        [
            ("12345", "NIC must be exactly 10 or 12 characters"),
            ("12345678AV", "For 10-character NIC: first 9 characters must be numbers"),
            ("123456789A", "For 10-character NIC: last character must be X or V"),
            ("12345678901X", "For 12-character NIC: all characters must be numbers"),
            (None, "NIC is required"),
        ],
    )
    def test_nic_is_validated(self, assessments, assessment_kwargs, approved_template, nic, message):
        with pytest.raises(ValidationError) as exc:
            assessments.create(**assessment_kwargs(approved_template.id, "A1", nic=nic))
        assert exc.value.field == "nic"
        assert exc.value.user_message == message

    def test_required_fields(self, assessments, assessment_kwargs, approved_template):
        with pytest.raises(ValidationError, match="Assessment template is required"):
            assessments.create(**assessment_kwargs(None, "A1"))
        kwargs = assessment_kwargs(approved_template.id, "A1")
        kwargs["answers"] = []
        with pytest.raises(ValidationError, match="Assessment answers are required"):
            assessments.create(**kwargs)


class TestAssessmentDecisions:
    def test_approve(self, assessments, assessment_kwargs, approved_template, audit):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        row = assessments.approve(row.id, "bob")
        assert row.approval_status == "approved"
        assert row.approved_by == "bob"
        assert row.approved_at is not None
        assert audit.actions()[-1] == "customer_assessment_approved"

    def test_reject_requires_remarks(self, assessments, assessment_kwargs, approved_template):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        with pytest.raises(ValidationError) as exc:
            assessments.reject(row.id, "bob", "   ")
        assert exc.value.user_message == "Remarks are required when rejecting an assessment"

    def test_reject_requires_actor(self, assessments, assessment_kwargs, approved_template):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        with pytest.raises(ValidationError, match="Rejecter information is required"):
            assessments.reject(row.id, None, "redo")

    def test_approved_cannot_be_rejected(self, assessments, assessment_kwargs, approved_template):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        assessments.approve(row.id, "bob")
        with pytest.raises(StateError):
            assessments.reject(row.id, "bob", "changed my mind")

    def test_unknown_assessment(self, assessments):
        with pytest.raises(AssessmentNotFoundError):
            assessments.approve(12345, "bob")


class TestAssessmentEdit:
    def test_edit_rejected_resubmits(self, assessments, assessment_kwargs, approved_template, audit):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        assessments.reject(row.id, "bob", "redo")

        row = assessments.edit(
            row.id, [{"questionId": "Q1", "answerId": "A2"}], updated_by="alice"
        )
        assert row.approval_status == "pending"
        assert row.total_score == 40
        assert row.rating == "C"
        assert row.rejection_remarks is None
        assert row.rejected_by is None
        assert [a.answer_id for a in row.answers] == ["A2"]
        assert audit.actions()[-1] == "customer_assessment_resubmitted"

    def test_edit_after_template_is_hidden(
        self, assessments, templates, assessment_kwargs, approved_template
    ):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        assessments.reject(row.id, "bob", "redo")
        templates.set_visibility(approved_template.id, True, actor="dave")

        row = assessments.edit(row.id, [{"questionId": "Q1", "answerId": "A2"}])
        assert row.approval_status == "pending"
        assert (row.total_score, row.rating) == (40, "C")

    @pytest.mark.parametrize("decide", [None, "approve"])
    def test_only_rejected_can_be_edited(self, assessments, assessment_kwargs, approved_template, decide):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        if decide:
            assessments.approve(row.id, "bob")
        with pytest.raises(StateError, match="Only rejected assessments can be edited"):
            assessments.edit(row.id, [{"questionId": "Q1", "answerId": "A2"}])

    def test_stale_version(self, assessments, assessment_kwargs, approved_template):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        assessments.reject(row.id, "bob", "redo")
        with pytest.raises(ConflictError):
            assessments.edit(
                row.id, [{"questionId": "Q1", "answerId": "A2"}], expected_version=1
            )


class TestAssessmentVisibility:
    def test_hide_then_show(self, assessments, assessment_kwargs, approved_template, audit):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        version = row.version

        row = assessments.set_visibility(row.id, True, actor="dave")
        assert row.is_deleted is True
        assert row.version == version
        assert row.approval_status == "pending"
        assert audit.events[-1].action == "Customer Assessment Hidden"
        assert "Retail" in audit.events[-1].description

        with pytest.raises(AssessmentNotFoundError):
            assessments.get(row.id)
        assert assessments.list(customer_id="CUST-1") == []
        assert [r.id for r in assessments.list_for_management()] == [row.id]

        row = assessments.set_visibility(row.id, False, actor="dave")
        assert assessments.get(row.id).is_deleted is False

    def test_redundant_toggle(self, assessments, assessment_kwargs, approved_template):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        with pytest.raises(StateError, match="already visible"):
            assessments.set_visibility(row.id, False)

    def test_flag_must_be_boolean(self, assessments, assessment_kwargs, approved_template):
        row = assessments.create(**assessment_kwargs(approved_template.id, "A1"))
        with pytest.raises(ValidationError) as exc:
            assessments.set_visibility(row.id, "true")
        assert exc.value.field == "isDeleted"


def test_list_filters(session, assessment_kwargs, approved_template):
    store = AssessmentStore(session)
    first = store.create(**assessment_kwargs(approved_template.id, "A1"))
    second = store.create(**assessment_kwargs(approved_template.id, "A2", customer_id="CUST-2"))
    store.approve(second.id, "bob")

    assert [r.id for r in store.list(customer_id="CUST-1")] == [first.id]
    assert [r.id for r in store.list(status="approved")] == [second.id]
    with pytest.raises(ValidationError):
        store.list(status="archived")
