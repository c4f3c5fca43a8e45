"""
Shared plumbing for the application services.

Each service wraps one request-scoped SQLAlchemy session. ``transaction``
commits on success, rolls back on any failure and converts storage errors
into the application's exception types; audit events are published only
once the commit has gone through.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..infrastructure.audit import AuditEvent, AuditPublisher, NullAuditPublisher
from ..infrastructure.config import get_settings
from ..infrastructure.exceptions import (
    ConflictError,
    ValidationError,
    handle_database_error,
    log_error_details,
)
from ..infrastructure.logging import get_logger


def display_actor(name: str | None) -> str:
    """Name recorded in the activity log when the caller did not identify itself."""
    return (name or "").strip() or "Unknown User"


def check_comment_length(field: str, text: str | None) -> None:
    limit = get_settings().security.max_comment_length
    if text and len(text) > limit:
        raise ValidationError(field, f"{field} must be at most {limit} characters", len(text))


def check_version(entity: Any, expected_version: int | None, entity_name: str) -> None:
    """Raise ConflictError when the caller edited an older copy of the record."""
    if expected_version is None:
        return
    if int(expected_version) != entity.version:
        raise ConflictError(
            f"{entity_name} was modified by someone else. Reload and try again.",
            details={"expected_version": expected_version, "current_version": entity.version},
        )


class Service:
    """Base class for the session-scoped services."""

    def __init__(self, session: Session, audit: AuditPublisher | None = None):
        self.s = session
        self.audit: AuditPublisher = audit or NullAuditPublisher()
        self.logger = get_logger(self.__class__.__name__)

    @contextmanager
    def transaction(self, operation: str) -> Iterator[None]:
        try:
            yield
            self.s.commit()
        except StaleDataError as e:
            self.s.rollback()
            self.logger.warning(f"Concurrent modification during {operation}: {str(e)}")
            raise ConflictError(
                "The record was modified by someone else. Reload and try again.",
                details={"operation": operation},
            ) from e
        except SQLAlchemyError as e:
            self.s.rollback()
            error = handle_database_error(e, operation)
            self.logger.error(
                f"Database error in {operation}",
                extra=log_error_details(e, {"operation": operation}),
                exc_info=True,
            )
            raise error from e
        except Exception:
            self.s.rollback()
            raise

    def publish(self, event: AuditEvent) -> None:
        try:
            self.audit.publish(event)
        except Exception:
            self.logger.error(f"Audit publish failed for {event.action}", exc_info=True)
