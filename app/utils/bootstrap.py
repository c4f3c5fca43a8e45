from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from app.infrastructure.logging import get_logger
from app.infrastructure.models import Base

logger = get_logger(__name__)


def initialise_database(engine: Engine) -> bool:
    """
    Ensure all ORM tables exist.

    Returns:
        True if every table already existed before this call, False if at least one table
        needed to be created.
    """

    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    expected_tables = [table.name for table in Base.metadata.sorted_tables]
    missing = [table for table in expected_tables if table not in existing_tables]
    Base.metadata.create_all(engine)
    if missing:
        logger.info(f"Created tables: {', '.join(missing)}")
    return not missing
