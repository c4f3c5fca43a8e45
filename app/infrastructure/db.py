"""
Database connection and session management with centralized configuration.

This module provides database connectivity using the centralized configuration
system, with proper error handling and logging integration.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .config import DatabaseConfig, get_settings
from .exceptions import ConfigurationError, handle_database_error
from .logging import get_logger

logger = get_logger(__name__)


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """
    Create SQLAlchemy engine with proper configuration.

    Args:
        config: Database configuration (uses default if None)

    Raises:
        ConfigurationError: If the settings do not describe a usable database URL
        StorageError: If the engine cannot be created
    """
    if config is None:
        config = get_settings().database

    try:
        connection_url = config.get_connection_url()
    except ValueError as e:
        raise ConfigurationError(str(e), config_key="DB_BACKEND") from e
    engine_options = config.get_engine_options()

    logger.info(f"Creating database engine for {config.backend} backend")
    logger.debug(f"Connection URL: {connection_url.split('@')[0]}@***")

    try:
        engine = create_engine(connection_url, **engine_options)
    except ArgumentError as e:
        logger.error(f"Invalid database URL: {str(e)}")
        raise ConfigurationError(f"Invalid database URL: {e}", config_key="DB_BACKEND") from e
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database engine: {str(e)}")
        raise handle_database_error(e, "create engine") from e
    return engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker:
    """
    Create SQLAlchemy session factory.

    Objects stay readable after commit so services can build responses and
    audit events from them once the transaction is closed.

    Example:
        >>> SessionLocal = create_session_factory()
        >>> with SessionLocal() as session:
        ...     pass
    """
    if engine is None:
        engine = create_database_engine()

    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def make_engine_and_session(connection_url: str | None = None) -> tuple[Engine, sessionmaker]:
    """
    Create engine and session factory.

    Args:
        connection_url: Explicit database URL; configuration is used when omitted

    Example:
        >>> engine, SessionLocal = make_engine_and_session("sqlite:///./scratch.db")
    """
    if connection_url:
        engine = create_engine(connection_url, pool_pre_ping=True)
    else:
        engine = create_database_engine()
    return engine, create_session_factory(engine)


def get_database_url() -> str:
    """Get database connection URL from configuration."""
    return get_settings().database.get_connection_url()
