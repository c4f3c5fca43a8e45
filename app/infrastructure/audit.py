"""
Fire-and-forget activity logging.

Services publish an AuditEvent after their own transaction has committed.
The queued publisher hands events to a background thread that writes
``activity_logs`` rows in a separate unit of work, so a failing audit write
can never undo or fail the operation that produced it.
"""

from __future__ import annotations

import json
import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.orm import sessionmaker

from .logging import get_logger
from .models import ActivityLogORM, utcnow
from .repositories_customer import ActivityLogRepo
from .uow import UnitOfWork

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    username: str
    description: str
    action: str
    metadata: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)


class AuditPublisher(Protocol):
    def publish(self, event: AuditEvent) -> None: ...


class NullAuditPublisher:
    """Used when auditing is disabled."""

    def publish(self, event: AuditEvent) -> None:
        logger.debug(f"Audit disabled, dropping {event.action}")


class ActivityLogWriter:
    """Persists audit events as activity log rows."""

    def __init__(self, SessionLocal: sessionmaker):
        self.uow = UnitOfWork(SessionLocal)

    def write(self, event: AuditEvent) -> None:
        with self.uow.begin() as s:
            ActivityLogRepo(s).add(
                ActivityLogORM(
                    username=event.username or "system",
                    description=event.description,
                    action=event.action,
                    metadata_json=json.dumps(event.metadata, default=str),
                    created_at=event.occurred_at,
                )
            )

    def __call__(self, event: AuditEvent) -> None:
        try:
            self.write(event)
        except Exception:
            logger.error(f"Failed to record activity log for {event.action}", exc_info=True)


class QueuedAuditPublisher:
    """
    In-process queue drained by a daemon worker thread.

    Example:
        >>> publisher = QueuedAuditPublisher(ActivityLogWriter(SessionLocal))
        >>> publisher.publish(AuditEvent("alice", "Created template", "template_created"))
    """

    _STOP = object()

    def __init__(self, consumer, maxsize: int = 1000):
        self.consumer = consumer
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._worker: threading.Thread | None = None
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(target=self._run, name="audit-writer", daemon=True)
            self._worker.start()

    def publish(self, event: AuditEvent) -> None:
        try:
            self.start()
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning(f"Audit queue full, dropping {event.action}")
        except Exception:
            logger.error(f"Could not enqueue audit event {event.action}", exc_info=True)

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait until every queued event has been handled.

        Returns:
            False if events were still pending when ``timeout`` ran out
        """
        if timeout is None:
            self._queue.join()
            return True
        deadline = time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def stop(self, timeout: float = 5.0) -> None:
        worker = self._worker
        if worker is None or not worker.is_alive():
            return
        self._queue.put(self._STOP)
        worker.join(timeout)
        self._worker = None

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                self.consumer(item)
            except Exception:
                logger.error("Audit consumer raised", exc_info=True)
            finally:
                self._queue.task_done()
