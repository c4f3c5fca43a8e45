# app/infrastructure/repositories_base.py
from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import update
from sqlalchemy.orm import Session


T = TypeVar("T")  # ORM model type


class BaseRepository[T]:
    """
    Lightweight generic repository with the shared read and write helpers.
    - Small and decoupled from app-specific logging/decorators.
    - Entity repos override methods and add decorators (logging) as needed.
    - Never commits; the owning service decides transaction boundaries.
    """

    model: type[T]  # must be set by subclasses

    def __init__(self, session: Session):
        if not hasattr(self, "model") or self.model is None:
            raise ValueError(f"{self.__class__.__name__}.model must be set to an ORM class.")
        self.s = session

    # ---------- Read ----------
    def get(self, id_: Any) -> T | None:
        return self.s.get(self.model, id_)

    # ---------- Write ----------
    def add(self, obj: T) -> T:
        self.s.add(obj)
        self.s.flush()  # get PKs without committing
        return obj

    # ---------- Guarded flag update ----------
    def set_visibility(self, id_: Any, hidden: bool, **extra: Any) -> bool:
        """
        Flip ``is_deleted`` in one conditional UPDATE.

        The WHERE clause only matches rows currently in the opposite state, so a
        redundant toggle (or a concurrent one that already won) matches nothing.
        The version column is not bumped.

        Returns:
            True if exactly one row changed
        """
        model: Any = self.model
        stmt = (
            update(model)
            .where(model.id == id_, model.is_deleted != hidden)
            .values(is_deleted=hidden, **extra)
        )
        result = self.s.execute(stmt)
        return result.rowcount == 1
