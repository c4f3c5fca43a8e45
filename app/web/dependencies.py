from __future__ import annotations

import threading
from collections.abc import Generator

from fastapi import FastAPI, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.infrastructure.audit import (
    ActivityLogWriter,
    AuditPublisher,
    NullAuditPublisher,
    QueuedAuditPublisher,
)
from app.infrastructure.config import DatabaseConfig, get_settings
from app.infrastructure.db import create_database_engine, create_session_factory

_publisher_lock = threading.Lock()


def _config_to_dict(config: DatabaseConfig) -> dict[str, object]:
    return config.model_dump()


def bind_database(app: FastAPI, engine: Engine) -> sessionmaker[Session]:
    """Pin the application to an existing engine instead of the configured one."""
    session_factory = create_session_factory(engine)
    app.state.db_engine = engine
    app.state.session_factory = session_factory
    app.state.session_factory_config = None
    return session_factory


def app_session_factory(app: FastAPI) -> sessionmaker[Session]:
    cached_factory = getattr(app.state, "session_factory", None)
    if cached_factory is not None and getattr(app.state, "session_factory_config", None) is None:
        return cached_factory

    config = getattr(app.state, "db_config", None)
    if config is None:
        config = get_settings().database
        app.state.db_config = config
    current_config_dict = _config_to_dict(config)

    if cached_factory is not None and app.state.session_factory_config == current_config_dict:
        return cached_factory

    engine = create_database_engine(config)
    session_factory = create_session_factory(engine)

    app.state.db_engine = engine
    app.state.session_factory = session_factory
    app.state.session_factory_config = current_config_dict

    return session_factory


def get_session_factory(request: Request) -> sessionmaker[Session]:
    return app_session_factory(request.app)


def get_db_session(request: Request) -> Generator[Session, None, None]:
    session_factory = get_session_factory(request)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def app_audit_publisher(app: FastAPI) -> AuditPublisher:
    """One publisher per application, built by whichever request needs it first."""
    publisher = getattr(app.state, "audit_publisher", None)
    if publisher is not None:
        return publisher

    with _publisher_lock:
        publisher = getattr(app.state, "audit_publisher", None)
        if publisher is not None:
            return publisher

        settings = get_settings()
        if settings.audit.enabled:
            publisher = QueuedAuditPublisher(
                ActivityLogWriter(app_session_factory(app)),
                maxsize=settings.audit.queue_maxsize,
            )
            publisher.start()
        else:
            publisher = NullAuditPublisher()
        app.state.audit_publisher = publisher
    return publisher


def get_audit_publisher(request: Request) -> AuditPublisher:
    return app_audit_publisher(request.app)
