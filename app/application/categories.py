"""Catalog of category names offered to template authors."""

from __future__ import annotations

from sqlalchemy.orm import Session

from ..domain.schemas import CatalogCategoryInput, parse_or_raise
from ..infrastructure.audit import AuditEvent, AuditPublisher
from ..infrastructure.exceptions import ConflictError
from ..infrastructure.logging import LogContext, log_operation
from ..infrastructure.models import CatalogCategoryORM, utcnow
from ..infrastructure.repositories import CategoryRepo
from .base import Service, display_actor


class CategoryCatalog(Service):
    def __init__(self, session: Session, audit: AuditPublisher | None = None):
        super().__init__(session, audit)
        self.repo = CategoryRepo(session)

    def list(self) -> list[CatalogCategoryORM]:
        return self.repo.list_live()

    @log_operation("create_category")
    def create(self, name: str | None, created_by: str | None = None) -> CatalogCategoryORM:
        data = parse_or_raise(CatalogCategoryInput, {"name": name})
        now = utcnow()

        with LogContext(actor=created_by), self.transaction("create category"):
            if self.repo.find_live_by_name(data.name) is not None:
                raise ConflictError("Category already exists")
            category = self.repo.add(
                CatalogCategoryORM(
                    name=data.name,
                    is_deleted=False,
                    created_by=created_by,
                    created_at=now,
                    updated_at=now,
                )
            )

        self.publish(
            AuditEvent(
                username=display_actor(created_by),
                description=f'Created new category: "{category.name}"',
                action="category_created",
                metadata={"categoryId": category.id},
            )
        )
        return category
