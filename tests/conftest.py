from __future__ import annotations

import os

os.environ.setdefault("APP_ENVIRONMENT", "testing")

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.application.assessments import AssessmentStore
from app.application.templates import TemplateStore
from app.infrastructure.audit import AuditEvent
from app.infrastructure.db import create_session_factory
from app.infrastructure.models import Base
from app.web.dependencies import bind_database, get_audit_publisher
from app.web.main import create_application


class RecordingAuditPublisher:
    """Keeps published events in memory instead of writing activity logs."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def publish(self, event: AuditEvent) -> None:
        self.events.append(event)

    def actions(self) -> list[str]:
        return [e.action for e in self.events]


class FailingAuditPublisher:
    def publish(self, event: AuditEvent) -> None:
        raise RuntimeError("audit store is down")


def template_payload(
    name: str = "Income",
    weight: tuple[float, float] = (100, 100),
    answers: tuple[tuple[str, float, float], ...] = (("A1", 80, 60), ("A2", 40, 20)),
) -> list[dict[str, Any]]:
    """One category "Income" with question Q1 and the given answer options."""
    return [
        {
            "categoryId": "C1",
            "categoryName": name,
            "questions": [
                {
                    "questionId": "Q1",
                    "text": "Monthly income level",
                    "proposedWeight": {"new": weight[0], "existing": weight[1]},
                    "answers": [
                        {
                            "answerId": answer_id,
                            "text": f"Option {answer_id}",
                            "score": {"new": score_new, "existing": score_existing},
                        }
                        for answer_id, score_new, score_existing in answers
                    ],
                }
            ],
        }
    ]


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    with session_factory() as s:
        yield s


@pytest.fixture
def audit() -> RecordingAuditPublisher:
    return RecordingAuditPublisher()


@pytest.fixture
def templates(session: Session, audit: RecordingAuditPublisher) -> TemplateStore:
    return TemplateStore(session, audit)


@pytest.fixture
def assessments(session: Session, audit: RecordingAuditPublisher) -> AssessmentStore:
    return AssessmentStore(session, audit)


@pytest.fixture
def approved_template(templates: TemplateStore):
    tpl = templates.create("Retail", template_payload(), created_by="alice")
    return templates.approve(tpl.id, "bob")


@pytest.fixture
def client(engine: Engine, audit: RecordingAuditPublisher) -> Iterator[TestClient]:
    app = create_application()
    bind_database(app, engine)
    app.dependency_overrides[get_audit_publisher] = lambda: audit
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def categories():
    """Factory for template category payloads."""
    return template_payload


def assessment_payload(
    template_id: Any,
    answer_id: str,
    customer_type: str = "new",
    customer_id: str = "CUST-1",
    nic: str | None = "123456789V",
) -> dict[str, Any]:
    return {
        "customer_name": "Jane Perera",
        "customer_id": customer_id,
        "nic": nic,
        "customer_type": customer_type,
        "template_id": template_id,
        "answers": [{"questionId": "Q1", "answerId": answer_id}],
        "assessed_by": "alice",
    }


@pytest.fixture
def assessment_kwargs():
    """Factory for ``AssessmentStore.create`` keyword arguments answering Q1."""
    return assessment_payload
