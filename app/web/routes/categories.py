from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.application.categories import CategoryCatalog
from app.infrastructure.audit import AuditPublisher
from app.web.dependencies import get_audit_publisher, get_db_session
from app.web.schemas import CatalogCategoryOut, CategoryCreateRequest, Envelope

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=Envelope[list[CatalogCategoryOut]])
def list_categories(db: Session = Depends(get_db_session)) -> Envelope[list[CatalogCategoryOut]]:
    rows = CategoryCatalog(db).list()
    return Envelope(data=[CatalogCategoryOut.model_validate(r) for r in rows])


@router.post(
    "", response_model=Envelope[CatalogCategoryOut], status_code=status.HTTP_201_CREATED
)
def create_category(
    payload: CategoryCreateRequest,
    db: Session = Depends(get_db_session),
    audit: AuditPublisher = Depends(get_audit_publisher),
) -> Envelope[CatalogCategoryOut]:
    category = CategoryCatalog(db, audit).create(payload.name, created_by=payload.created_by)
    return Envelope(
        message="Category created successfully",
        data=CatalogCategoryOut.model_validate(category),
    )
