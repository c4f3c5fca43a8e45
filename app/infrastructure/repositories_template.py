# app/infrastructure/repositories_template.py
from __future__ import annotations

import builtins
from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .logging import log_database_operation as log_op
from .models import RatingTemplateORM, TemplateCategoryORM, TemplateQuestionORM
from .repositories_base import BaseRepository as GenericBaseRepository


def _with_tree():
    """Eager-load categories -> questions -> answers in three SELECTs."""
    return (
        selectinload(RatingTemplateORM.categories)
        .selectinload(TemplateCategoryORM.questions)
        .selectinload(TemplateQuestionORM.answers)
    )


class TemplateRepo(GenericBaseRepository[RatingTemplateORM]):
    model = RatingTemplateORM

    def __init__(self, session: Session):
        super().__init__(session)

    # -------- Read --------

    @log_op("template.get")
    def get(self, id_: Any) -> RatingTemplateORM | None:
        stmt = select(RatingTemplateORM).options(_with_tree()).where(RatingTemplateORM.id == id_)
        return self.s.execute(stmt).scalar_one_or_none()

    @log_op("template.get_live")
    def get_live(self, id_: Any) -> RatingTemplateORM | None:
        """Non-deleted template with its full tree, or None."""
        tpl = self.get(id_)
        if tpl is None or tpl.is_deleted:
            return None
        return tpl

    @log_op("template.find_live_by_name")
    def find_live_by_name(
        self, name: str, exclude_id: int | None = None
    ) -> RatingTemplateORM | None:
        stmt = select(RatingTemplateORM).where(
            func.lower(RatingTemplateORM.name) == name.strip().lower(),
            RatingTemplateORM.is_deleted.is_(False),
        )
        if exclude_id is not None:
            stmt = stmt.where(RatingTemplateORM.id != exclude_id)
        return self.s.execute(stmt.limit(1)).scalar_one_or_none()

    @log_op("template.list_live")
    def list_live(self, approval_status: str | None = None) -> builtins.list[RatingTemplateORM]:
        """Non-deleted templates, newest first."""
        stmt = (
            select(RatingTemplateORM)
            .options(_with_tree())
            .where(RatingTemplateORM.is_deleted.is_(False))
            .order_by(RatingTemplateORM.created_at.desc(), RatingTemplateORM.id.desc())
        )
        if approval_status:
            stmt = stmt.where(RatingTemplateORM.approval_status == approval_status)
        return list(self.s.execute(stmt).scalars().all())

    @log_op("template.list_by_approval")
    def list_by_approval(
        self, statuses: Iterable[str], include_hidden: bool = True
    ) -> builtins.list[RatingTemplateORM]:
        """Templates in the given approval states, most recently updated first."""
        stmt = (
            select(RatingTemplateORM)
            .options(_with_tree())
            .where(RatingTemplateORM.approval_status.in_(list(statuses)))
            .order_by(RatingTemplateORM.updated_at.desc(), RatingTemplateORM.id.desc())
        )
        if not include_hidden:
            stmt = stmt.where(RatingTemplateORM.is_deleted.is_(False))
        return list(self.s.execute(stmt).scalars().all())

    # -------- Write --------

    @log_op("template.add")
    def add(self, obj: RatingTemplateORM) -> RatingTemplateORM:
        return super().add(obj)

    @log_op("template.set_visibility")
    def set_visibility(self, id_: Any, hidden: bool, **extra: Any) -> bool:
        return super().set_visibility(id_, hidden, **extra)
