from datetime import datetime

import pytest

from app.application.assessments import AssessmentStore
from app.application.history import EnrichmentJoin
from app.utils.legacy import (
    canonical_template_name,
    import_documents,
    legacy_datetime,
    legacy_id,
)

DOCUMENTS = {
    "templates": [
        {
            "_id": {"$oid": "64aa01"},
            "name": "Retail",
            "approvalStatus": "approved",
            "approvedBy": "bob",
            "createdAt": {"$date": "2023-05-01T08:30:00Z"},
            "categories": [
                {
                    "categoryId": "C1",
                    "categoryName": "Income",
                    "questions": [
                        {
                            "questionId": "Q1",
                            "text": "Monthly income level",
                            "proposedWeight": {"new": 100, "existing": "100"},
                            "answers": [
                                {"answerId": "A1", "text": "High", "score": {"new": 80, "existing": 60}},
                                {"answerId": "A2", "text": "Low", "score": 40},
                            ],
                        }
                    ],
                }
            ],
        }
    ],
    "customers": [
        {"customerId": "CUST-1", "customerName": "Jane Perera", "nic": "123456789v"},
        {"customerId": "CUST-1", "customerName": "Jane again", "nic": "200012345678"},
        {"customerId": "CUST-2", "customerName": "No NIC"},
    ],
    "customerAssessments": [
        {
            "_id": "a-1",
            "customerId": "CUST-1",
            "customerName": "Jane Perera",
            "nic": "123456789v",
            "customerType": "New",
            "assessmentTemplateId": {"$oid": "64aa01"},
            "templateName": "Retail (2023)",
            "totalScore": 75,
            "rating": "A-",
            "approvalStatus": "approved",
            "approvedBy": "bob",
            "assessmentDate": 1683000000000,
            "answers": [{"questionId": "Q1", "answerId": "A1", "score": 75, "weightedScore": 75}],
            "categoryScores": [{"categoryName": "Income", "score": 75}],
        },
        {
            "_id": "a-2",
            "customerId": "CUST-1",
            "customerName": "Jane Perera",
            "customerType": "corporate",
            "assessmentTemplate": {"name": "Gone"},
            "totalScore": "35",
            "approvalStatus": "rejected",
        },
        {"_id": "a-3", "customerName": "Nobody"},
    ],
}


@pytest.mark.parametrize(
    "doc, expected",
    [
        ({"assessmentTemplateName": " Retail ", "templateName": "Other"}, "Retail"),
        ({"templateName": "", "template_name": "Snake"}, "Snake"),
        ({"ratingTemplateName": "Rating"}, "Rating"),
        ({"template": {"name": "Nested"}}, "Nested"),
        ({"assessmentTemplate": {"name": "Deep"}}, "Deep"),
        ({"template": "not a mapping"}, ""),
        ({}, ""),
    ],
)
def test_canonical_template_name(doc, expected):
    assert canonical_template_name(doc) == expected


def test_legacy_id():
    assert legacy_id({"$oid": "64aa01"}) == "64aa01"
    assert legacy_id(17) == "17"
    assert legacy_id("  ") is None
    assert legacy_id(None) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ({"$date": "2023-05-01T08:30:00Z"}, datetime(2023, 5, 1, 8, 30)),
        ("2023-05-01T10:30:00+02:00", datetime(2023, 5, 1, 8, 30)),
        (0, datetime(1970, 1, 1)),
        ("not a date", None),
        ("", None),
        (None, None),
    ],
)
def test_legacy_datetime(value, expected):
    assert legacy_datetime(value) == expected


def test_import_documents(session):
    report = import_documents(session, DOCUMENTS)
    session.commit()

    assert (report.templates, report.customers, report.assessments) == (1, 1, 2)
    assert [(s["kind"], s["reason"]) for s in report.skipped] == [
        ("customer", "duplicate customerId or NIC"),
        ("customer", "missing NIC"),
        ("assessment", "missing customerId"),
    ]

    rows = {r.total_score: r for r in AssessmentStore(session).list(customer_id="CUST-1")}
    linked, orphan = rows[75], rows[35]

    assert linked.assessment_template_name == "Retail (2023)"
    assert linked.customer_type == "new"
    assert linked.nic == "123456789V"
    assert linked.assessment_date == datetime(2023, 5, 2, 4, 0)

    assert orphan.assessment_template_id is None
    assert orphan.assessment_template_name == "Gone"
    assert orphan.customer_type == "new"
    assert orphan.rating == "C-"
    assert orphan.rejection_remarks == "Imported without remarks"


def test_imported_history_keeps_stored_scores(session):
    import_documents(session, DOCUMENTS)
    session.commit()

    history = EnrichmentJoin(session).history("CUST-1")
    linked = next(a for a in history.assessments if a.template_available)

    assert linked.total_score == 75
    answer = linked.answers[0]
    assert answer.question_text == "Monthly income level"
    assert answer.answer_text == "High"
    assert answer.weighted_score == 80
    assert history.summary.latest_rating == "A-"


def test_imported_template_is_usable(session):
    import_documents(session, DOCUMENTS)
    session.commit()

    template_id = EnrichmentJoin(session).templates.find_live_by_name("Retail").id
    row = AssessmentStore(session).create(
        customer_name="Jane Perera",
        customer_id="CUST-1",
        nic="123456789V",
        customer_type="existing",
        template_id=template_id,
        answers=[{"questionId": "Q1", "answerId": "A2"}],
    )
    assert row.total_score == 40
    assert row.rating == "C"
