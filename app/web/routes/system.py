from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.infrastructure.config import get_settings
from app.infrastructure.logging import get_logger
from app.infrastructure.repositories import ActivityLogRepo
from app.web.dependencies import get_db_session
from app.web.schemas import ActivityLogOut, Envelope, HealthOut

router = APIRouter(prefix="/api", tags=["system"])
logger = get_logger(__name__)


@router.get("/activity-logs", response_model=Envelope[list[ActivityLogOut]])
def list_activity_logs(
    username: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db_session),
) -> Envelope[list[ActivityLogOut]]:
    rows = ActivityLogRepo(db).recent(username=username, action=action, limit=limit)
    return Envelope(data=[ActivityLogOut.from_orm_log(r) for r in rows])


@router.get("/health", response_model=Envelope[HealthOut])
def healthcheck(db: Session = Depends(get_db_session)) -> Envelope[HealthOut]:
    settings = get_settings()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        database = "unavailable"
    return Envelope(
        data=HealthOut(
            status="ok" if database == "ok" else "degraded",
            database=database,
            environment=settings.app.environment,
            version=settings.app.version,
        )
    )
