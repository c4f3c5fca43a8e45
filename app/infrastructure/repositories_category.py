# app/infrastructure/repositories_category.py
from __future__ import annotations

import builtins

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .logging import log_database_operation as log_op
from .models import CatalogCategoryORM
from .repositories_base import BaseRepository as GenericBaseRepository


class CategoryRepo(GenericBaseRepository[CatalogCategoryORM]):
    model = CatalogCategoryORM

    def __init__(self, session: Session):
        super().__init__(session)

    @log_op("category.list_live")
    def list_live(self) -> builtins.list[CatalogCategoryORM]:
        stmt = (
            select(CatalogCategoryORM)
            .where(CatalogCategoryORM.is_deleted.is_(False))
            .order_by(CatalogCategoryORM.name, CatalogCategoryORM.id)
        )
        return list(self.s.execute(stmt).scalars().all())

    @log_op("category.find_live_by_name")
    def find_live_by_name(self, name: str) -> CatalogCategoryORM | None:
        stmt = select(CatalogCategoryORM).where(
            func.lower(CatalogCategoryORM.name) == name.strip().lower(),
            CatalogCategoryORM.is_deleted.is_(False),
        )
        return self.s.execute(stmt.limit(1)).scalar_one_or_none()

    @log_op("category.add")
    def add(self, obj: CatalogCategoryORM) -> CatalogCategoryORM:
        return super().add(obj)
