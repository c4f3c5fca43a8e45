# app/infrastructure/repositories_assessment.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .logging import log_database_operation as log_op
from .models import CustomerAssessmentORM
from .repositories_base import BaseRepository as GenericBaseRepository


class AssessmentRepo(GenericBaseRepository[CustomerAssessmentORM]):
    model = CustomerAssessmentORM

    def __init__(self, session: Session):
        super().__init__(session)

    def _select(self):
        return select(CustomerAssessmentORM).options(
            selectinload(CustomerAssessmentORM.answers),
            selectinload(CustomerAssessmentORM.category_scores),
        )

    # -------- Read --------

    @log_op("assessment.get")
    def get(self, id_: Any) -> CustomerAssessmentORM | None:
        stmt = self._select().where(CustomerAssessmentORM.id == id_)
        return self.s.execute(stmt).scalar_one_or_none()

    @log_op("assessment.get_visible")
    def get_visible(self, id_: Any) -> CustomerAssessmentORM | None:
        obj = self.get(id_)
        if obj is None or obj.is_deleted:
            return None
        return obj

    @log_op("assessment.list_visible")
    def list_visible(
        self, customer_id: str | None = None, status: str | None = None
    ) -> builtins.list[CustomerAssessmentORM]:
        """Non-hidden assessments, most recent assessment date first."""
        stmt = (
            self._select()
            .where(CustomerAssessmentORM.is_deleted.is_(False))
            .order_by(
                CustomerAssessmentORM.assessment_date.desc(), CustomerAssessmentORM.id.desc()
            )
        )
        if customer_id:
            stmt = stmt.where(CustomerAssessmentORM.customer_id == customer_id)
        if status:
            stmt = stmt.where(CustomerAssessmentORM.approval_status == status)
        return list(self.s.execute(stmt).scalars().all())

    @log_op("assessment.customer_rows")
    def customer_rows(self) -> builtins.list[Any]:
        """
        ``(customer_id, customer_name, nic, assessment_date)`` of every visible
        assessment, grouped by customer with the newest assessment first.
        """
        a = CustomerAssessmentORM
        stmt = (
            select(a.customer_id, a.customer_name, a.nic, a.assessment_date)
            .where(a.is_deleted.is_(False))
            .order_by(a.customer_id, a.assessment_date.desc(), a.id.desc())
        )
        return list(self.s.execute(stmt).all())

    @log_op("assessment.list_all")
    def list_all(self) -> builtins.list[CustomerAssessmentORM]:
        """Every assessment including hidden ones, most recently updated first."""
        stmt = self._select().order_by(
            CustomerAssessmentORM.updated_at.desc(), CustomerAssessmentORM.id.desc()
        )
        return list(self.s.execute(stmt).scalars().all())

    # -------- Write --------

    @log_op("assessment.add")
    def add(self, obj: CustomerAssessmentORM) -> CustomerAssessmentORM:
        return super().add(obj)

    @log_op("assessment.set_visibility")
    def set_visibility(self, id_: Any, hidden: bool, **extra: Any) -> bool:
        return super().set_visibility(id_, hidden, **extra)
