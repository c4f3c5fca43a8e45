# app/infrastructure/repositories_customer.py
from __future__ import annotations

import builtins

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from .logging import log_database_operation as log_op
from .models import ActivityLogORM, CustomerORM
from .repositories_base import BaseRepository as GenericBaseRepository


class CustomerRepo(GenericBaseRepository[CustomerORM]):
    model = CustomerORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("customer.get_live")
    def get_live(self, customer_id: str) -> CustomerORM | None:
        stmt = select(CustomerORM).where(
            CustomerORM.customer_id == customer_id, CustomerORM.is_deleted.is_(False)
        )
        return self.s.execute(stmt).scalar_one_or_none()

    @log_op("customer.find")
    def find(self, customer_id: str | None = None, nic: str | None = None) -> CustomerORM | None:
        """First live customer matching either identifier."""
        clauses = []
        if customer_id:
            clauses.append(CustomerORM.customer_id == customer_id)
        if nic:
            clauses.append(CustomerORM.nic == nic)
        if not clauses:
            return None
        stmt = (
            select(CustomerORM)
            .where(or_(*clauses), CustomerORM.is_deleted.is_(False))
            .order_by(CustomerORM.id)
            .limit(1)
        )
        return self.s.execute(stmt).scalar_one_or_none()

    @log_op("customer.add")
    def add(self, obj: CustomerORM) -> CustomerORM:
        return super().add(obj)


class ActivityLogRepo(GenericBaseRepository[ActivityLogORM]):
    model = ActivityLogORM

    @log_op("activity.add")
    def add(self, obj: ActivityLogORM) -> ActivityLogORM:
        return super().add(obj)

    @log_op("activity.recent")
    def recent(
        self, username: str | None = None, action: str | None = None, limit: int = 50
    ) -> builtins.list[ActivityLogORM]:
        stmt = select(ActivityLogORM).order_by(
            ActivityLogORM.created_at.desc(), ActivityLogORM.id.desc()
        )
        if username:
            stmt = stmt.where(ActivityLogORM.username == username)
        if action:
            stmt = stmt.where(ActivityLogORM.action == action)
        return list(self.s.execute(stmt.limit(limit)).scalars().all())
