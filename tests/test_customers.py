import pytest

from app.application.customers import CustomerDirectory
from app.infrastructure.exceptions import ConflictError, CustomerNotFoundError, ValidationError


@pytest.fixture
def directory(session, audit):
    return CustomerDirectory(session, audit)


def register(directory, customer_id="CUST-1", nic="123456789v", **extra):
    return directory.create(
        customer_name="Jane Perera", customer_id=customer_id, nic=nic, created_by="alice", **extra
    )


def test_create_normalises_nic(directory, audit):
    customer = register(directory, email="jane@example.com")
    assert customer.nic == "123456789V"
    assert customer.email == "jane@example.com"
    assert audit.actions() == ["customer_created"]


def test_duplicate_id_or_nic_conflicts(directory):
    register(directory)
    with pytest.raises(ConflictError, match="already exists"):
        register(directory, nic="200012345678")
    with pytest.raises(ConflictError):
        register(directory, customer_id="CUST-2", nic="123456789V")


def test_invalid_email(directory):
    with pytest.raises(ValidationError) as exc:
        register(directory, email="not-an-email")
    assert exc.value.field == "email"


def test_check_new_and_existing(directory):
    assert directory.check(customer_id="CUST-1") == ("new", None)

    customer = register(directory)
    status, found = directory.check(nic="123456789v")
    assert status == "existing"
    assert found.id == customer.id
    assert directory.check(customer_id="CUST-1", nic="200012345678")[0] == "existing"


def test_check_needs_an_identifier(directory):
    with pytest.raises(ValidationError) as exc:
        directory.check()
    assert exc.value.user_message == "Please provide Customer ID or NIC to check customer status"


def test_check_validates_nic(directory):
    with pytest.raises(ValidationError) as exc:
        directory.check(nic="1234")
    assert exc.value.field == "nic"


def test_get_unknown_customer(directory):
    with pytest.raises(CustomerNotFoundError):
        directory.get("missing")


def test_roster_keeps_latest_visible_assessment(
    directory, assessments, approved_template, assessment_kwargs
):
    assessments.create(**assessment_kwargs(approved_template.id, "A1"))
    assessments.create(
        **{**assessment_kwargs(approved_template.id, "A2"), "customer_name": "Jane Fernando"}
    )
    hidden = assessments.create(
        **assessment_kwargs(approved_template.id, "A1", customer_id="CUST-0", nic="200012345678")
    )
    assessments.set_visibility(hidden.id, True, actor="dave")

    roster = directory.roster()
    assert [(e.customer_id, e.customer_name) for e in roster] == [("CUST-1", "Jane Fernando")]
    assert roster[0].last_assessment_date is not None
