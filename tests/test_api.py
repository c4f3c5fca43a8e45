import pytest
from fastapi.testclient import TestClient

from app.infrastructure.audit import ActivityLogWriter, AuditEvent
from app.utils.exports import XLSX_MEDIA_TYPE
from app.web.main import GENERIC_ERROR
from app.web.routes.templates import get_template_store

NEW_CUSTOMER = {
    "customerName": "Jane Perera",
    "customerId": "CUST-1",
    "nic": "123456789V",
    "customerType": "new",
}


def create_template(client, categories, name="Retail Lending"):
    resp = client.post(
        "/api/templates",
        json={"name": name, "categories": categories(), "createdBy": "alice"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def approve_template(client, template_id):
    resp = client.post(
        "/api/templates/approvals",
        json={"templateId": template_id, "action": "approve", "approvedBy": "bob"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def submit_assessment(client, template_id, answer_id="A1", **overrides):
    payload = {
        **NEW_CUSTOMER,
        "assessmentTemplateId": template_id,
        "answers": [{"questionId": "Q1", "answerId": answer_id}],
        "assessedBy": "alice",
        **overrides,
    }
    return client.post("/api/customer-assessments", json=payload)


@pytest.fixture
def live_template(client, categories):
    return approve_template(client, create_template(client, categories)["id"])


def test_rating_workflow_end_to_end(client, audit, categories):
    tpl = create_template(client, categories)
    assert tpl["approvalStatus"] == "pending"
    assert tpl["categories"][0]["questions"][0]["proposedWeight"] == {"new": 100, "existing": 100}

    tpl = approve_template(client, tpl["id"])
    assert tpl["approvalStatus"] == "approved"
    assert tpl["status"] == "active"

    resp = submit_assessment(client, tpl["id"], "A1")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assessment = body["data"]
    assert (assessment["totalScore"], assessment["rating"]) == (80, "A")
    assert assessment["approvalStatus"] == "pending"
    assert assessment["categoryScores"] == [{"categoryName": "Income", "score": 80}]

    resp = client.post(
        f"/api/customer-assessments/{assessment['id']}/approve",
        json={"status": "rejected", "remarks": "redo", "rejectedBy": "bob"},
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Assessment rejected successfully"
    assert resp.json()["data"]["rejectionRemarks"] == "redo"

    resp = client.put(
        f"/api/customer-assessments/{assessment['id']}",
        json={"answers": [{"questionId": "Q1", "answerId": "A2"}], "updatedBy": "alice"},
    )
    assert resp.status_code == 200, resp.text
    edited = resp.json()["data"]
    assert edited["approvalStatus"] == "pending"
    assert (edited["totalScore"], edited["rating"]) == (40, "C")
    assert edited["rejectionRemarks"] is None

    assert audit.actions() == [
        "template_created",
        "template_approved",
        "customer_assessment_created",
        "customer_assessment_rejected",
        "customer_assessment_resubmitted",
    ]


class TestTemplateEndpoints:
    def test_get_by_id_and_lists(self, client, categories, live_template):
        pending = create_template(client, categories, name="Commercial")

        resp = client.get("/api/templates", params={"id": live_template["id"]})
        assert resp.json()["data"]["name"] == "Retail Lending"

        resp = client.get("/api/templates", params={"approvalStatus": "approved"})
        assert [t["id"] for t in resp.json()["data"]] == [live_template["id"]]

        resp = client.get("/api/templates/approvals")
        assert [t["id"] for t in resp.json()["data"]] == [pending["id"]]

    def test_unknown_template_is_404(self, client):
        resp = client.get("/api/templates", params={"id": 999})
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "Template not found"

    def test_duplicate_name_is_409(self, client, categories, live_template):
        resp = client.post(
            "/api/templates",
            json={"name": "retail lending", "categories": categories()},
        )
        assert resp.status_code == 409
        assert resp.json()["success"] is False

    def test_validation_error_names_field(self, client, categories):
        resp = client.post("/api/templates", json={"name": "", "categories": categories()})
        assert resp.status_code == 400
        body = resp.json()
        assert body["field"] == "name"
        assert body["errors"]

    def test_invalid_decision_action(self, client, categories):
        tpl = create_template(client, categories)
        resp = client.post(
            "/api/templates/approvals",
            json={"templateId": tpl["id"], "action": "maybe", "approvedBy": "bob"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == 'Action must be either "approve" or "reject"'

    def test_legacy_assessment_id_key(self, client, categories):
        tpl = create_template(client, categories)
        resp = client.post(
            "/api/templates/approvals",
            json={
                "assessmentId": tpl["id"],
                "action": "reject",
                "approvedBy": "bob",
                "comments": "weights",
            },
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["approvalStatus"] == "rejected"

    def test_update_with_stale_version(self, client, categories, live_template):
        resp = client.put(
            "/api/templates",
            json={
                "id": live_template["id"],
                "name": "Retail Lending",
                "categories": categories(),
                "expectedVersion": live_template["version"] - 1,
            },
        )
        assert resp.status_code == 409

    def test_visibility_toggle(self, client, live_template):
        url = f"/api/templates/{live_template['id']}/visibility"
        resp = client.patch(url, json={"isHidden": True, "username": "dave"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Template hidden"
        assert resp.json()["data"]["version"] == live_template["version"]

        resp = client.patch(url, json={"isHidden": True})
        assert resp.status_code == 400
        assert "already hidden" in resp.json()["message"]

        assert client.get("/api/templates/manage").json()["data"][0]["isDeleted"] is True

    def test_delete(self, client, live_template):
        resp = client.delete("/api/templates", params={"id": live_template["id"], "deletedBy": "erin"})
        assert resp.status_code == 200
        assert client.get("/api/templates", params={"id": live_template["id"]}).status_code == 404

    def test_json_download(self, client, live_template):
        resp = client.get(f"/api/templates/{live_template['id']}/export", params={"format": "json"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["Template Name"] == "Retail Lending"
        assert body["Approval Status"] == "approved"
        assert body["Approved By"] == "bob"
        assert body["Total Questions"] == 1
        assert [c["Category Name"] for c in body["Categories"]] == ["Income"]
        assert [q["AnswerID"] for q in body["Questions"]] == ["A1", "A2"]
        assert body["Questions"][0]["Question"] == "Monthly income level"

    @pytest.mark.parametrize("fmt", [None, "excel"])
    def test_xlsx_download(self, client, live_template, fmt):
        params = {"format": fmt} if fmt else {}
        resp = client.get(f"/api/templates/{live_template['id']}/export", params=params)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(XLSX_MEDIA_TYPE)
        assert "Retail_Lending_template.xlsx" in resp.headers["content-disposition"]
        assert resp.content[:2] == b"PK"

    def test_download_errors(self, client, live_template):
        url = f"/api/templates/{live_template['id']}/export"
        assert client.get(url, params={"format": "pdf"}).status_code == 400
        assert client.get("/api/templates/999/export").status_code == 404

        client.patch(f"/api/templates/{live_template['id']}/visibility", json={"isHidden": True})
        assert client.get(url).status_code == 404


class TestCategoryEndpoints:
    def test_create_and_list(self, client, audit):
        resp = client.post("/api/categories", json={"name": "Security", "createdBy": "alice"})
        assert resp.status_code == 201
        assert resp.json()["message"] == "Category created successfully"
        assert resp.json()["data"]["createdBy"] == "alice"
        client.post("/api/categories", json={"name": "Income"})

        names = [c["name"] for c in client.get("/api/categories").json()["data"]]
        assert names == ["Income", "Security"]
        assert audit.actions() == ["category_created", "category_created"]

    def test_duplicate_name_ignores_case(self, client):
        client.post("/api/categories", json={"name": "Income"})
        resp = client.post("/api/categories", json={"name": " income "})
        assert resp.status_code == 409
        assert resp.json()["message"] == "Category already exists"

    @pytest.mark.parametrize("body", [{}, {"name": "   "}])
    def test_name_is_required(self, client, body):
        resp = client.post("/api/categories", json=body)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Category name is required"


class TestAssessmentEndpoints:
    def test_unapproved_template_is_rejected(self, client, categories):
        tpl = create_template(client, categories)
        resp = submit_assessment(client, tpl["id"])
        assert resp.status_code == 400
        assert resp.json()["field"] == "assessmentTemplateId"

    def test_invalid_nic(self, client, live_template):
        resp = submit_assessment(client, live_template["id"], nic="12345")
        assert resp.status_code == 400
        assert resp.json()["message"] == "NIC must be exactly 10 or 12 characters"

    def test_invalid_decision_status(self, client, live_template):
        row = submit_assessment(client, live_template["id"]).json()["data"]
        resp = client.post(
            f"/api/customer-assessments/{row['id']}/approve", json={"status": "archived"}
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == 'Invalid status. Must be "approved" or "rejected"'

    def test_edit_pending_is_refused(self, client, live_template):
        row = submit_assessment(client, live_template["id"]).json()["data"]
        resp = client.put(
            f"/api/customer-assessments/{row['id']}",
            json={"answers": [{"questionId": "Q1", "answerId": "A2"}]},
        )
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("Only rejected assessments can be edited")

    def test_filters_and_visibility(self, client, live_template):
        row = submit_assessment(client, live_template["id"]).json()["data"]
        client.post(
            f"/api/customer-assessments/{row['id']}/approve",
            json={"status": "approved", "approvedBy": "bob"},
        )

        resp = client.get("/api/customer-assessments", params={"status": "approved"})
        assert [a["id"] for a in resp.json()["data"]] == [row["id"]]

        resp = client.patch(
            "/api/customer-assessments/visibility",
            json={"id": row["id"], "isDeleted": True, "username": "dave"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["approvalStatus"] == "approved"

        resp = client.get("/api/customer-assessments", params={"customerId": "CUST-1"})
        assert resp.json()["data"] == []
        assert client.get("/api/customer-assessments", params={"id": row["id"]}).status_code == 404
        assert len(client.get("/api/customer-assessments/manage").json()["data"]) == 1

    def test_json_export(self, client, live_template):
        row = submit_assessment(client, live_template["id"]).json()["data"]
        resp = client.get(f"/api/customer-assessments/{row['id']}/export", params={"format": "json"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["rating"] == "A"
        assert body["template_available"] is True
        assert body["answers"][0]["Question"] == "Monthly income level"
        assert body["answers"][0]["WeightedScore"] == 80

    def test_xlsx_export(self, client, live_template):
        row = submit_assessment(client, live_template["id"]).json()["data"]
        resp = client.get(f"/api/customer-assessments/{row['id']}/export", params={"format": "XLSX"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(XLSX_MEDIA_TYPE)
        assert f"assessment_{row['id']}.xlsx" in resp.headers["content-disposition"]
        assert resp.content[:2] == b"PK"

    def test_unsupported_export_format(self, client, live_template):
        row = submit_assessment(client, live_template["id"]).json()["data"]
        resp = client.get(f"/api/customer-assessments/{row['id']}/export", params={"format": "csv"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Unsupported export format 'csv'. Use json or xlsx."


class TestCustomerEndpoints:
    def test_create_check_and_history(self, client, live_template):
        resp = client.post("/api/customers/check", json={"customerId": "CUST-1"})
        assert resp.json()["data"] == {"status": "new", "customer": None}
        assert resp.json()["message"] == "New customer"

        resp = client.post(
            "/api/customers",
            json={"customerName": "Jane Perera", "customerId": "CUST-1", "nic": "123456789v"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["nic"] == "123456789V"

        resp = client.post("/api/customers/check", json={"nic": "123456789V"})
        assert resp.json()["data"]["status"] == "existing"

        row = submit_assessment(client, live_template["id"]).json()["data"]
        client.post(
            f"/api/customer-assessments/{row['id']}/approve",
            json={"status": "approved", "approvedBy": "bob"},
        )

        resp = client.get("/api/customer/CUST-1/history")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["customer"]["customerId"] == "CUST-1"
        assert data["summary"] == {
            "totalAssessments": 1,
            "approvedCount": 1,
            "pendingCount": 0,
            "rejectedCount": 0,
            "latestRating": "A",
        }
        answer = data["assessments"][0]["answers"][0]
        assert answer["questionText"] == "Monthly income level"
        assert answer["answerText"] == "Option A1"

    def test_duplicate_customer_is_409(self, client):
        body = {"customerName": "Jane", "customerId": "CUST-1", "nic": "200012345678"}
        assert client.post("/api/customers", json=body).status_code == 200
        resp = client.post("/api/customers", json=body)
        assert resp.status_code == 409
        assert resp.json()["message"] == "Customer with this ID or NIC already exists"

    def test_roster_lists_each_customer_once(self, client, live_template):
        submit_assessment(client, live_template["id"], customerId="CUST-2", customerName="Kamal Silva")
        submit_assessment(client, live_template["id"])
        submit_assessment(client, live_template["id"], customerName="Jane Fernando")
        hidden = submit_assessment(
            client, live_template["id"], customerId="CUST-3", nic="200012345678"
        ).json()["data"]
        client.patch(
            "/api/customer-assessments/visibility",
            json={"id": hidden["id"], "isDeleted": True, "username": "dave"},
        )

        resp = client.get("/api/customers")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Found 2 customers"
        roster = resp.json()["data"]
        assert [(c["customerId"], c["customerName"]) for c in roster] == [
            ("CUST-1", "Jane Fernando"),
            ("CUST-2", "Kamal Silva"),
        ]
        assert roster[0]["nic"] == "123456789V"
        assert roster[0]["lastAssessmentDate"]

    def test_empty_roster(self, client):
        resp = client.get("/api/customers")
        assert resp.json()["message"] == "Found 0 customers"
        assert resp.json()["data"] == []

    def test_check_requires_identifier(self, client):
        resp = client.post("/api/customers/check", json={})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Please provide Customer ID or NIC to check customer status"

    def test_history_of_unknown_customer(self, client):
        assert client.get("/api/customer/nobody/history").status_code == 404


class TestSystemEndpoints:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "ok"
        assert data["database"] == "ok"
        assert data["environment"] == "testing"

    def test_activity_logs(self, client, session_factory):
        writer = ActivityLogWriter(session_factory)
        writer.write(AuditEvent("alice", "Created template", "template_created", {"templateId": 1}))
        writer.write(AuditEvent("bob", "Approved template", "template_approved"))

        resp = client.get("/api/activity-logs", params={"username": "alice"})
        logs = resp.json()["data"]
        assert [log["action"] for log in logs] == ["template_created"]
        assert logs[0]["metadata"] == {"templateId": 1}

        assert len(client.get("/api/activity-logs").json()["data"]) == 2

    def test_limit_out_of_range_is_400(self, client):
        resp = client.get("/api/activity-logs", params={"limit": 0})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_request_id_header(self, client):
        resp = client.get("/api/health", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"
        assert client.get("/api/health").headers["X-Request-ID"]

    def test_unexpected_error_is_enveloped(self, client):
        def broken_store():
            raise RuntimeError("boom")

        client.app.dependency_overrides[get_template_store] = broken_store
        raw = TestClient(client.app, raise_server_exceptions=False)
        resp = raw.get("/api/templates")
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": GENERIC_ERROR}
