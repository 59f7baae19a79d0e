from __future__ import annotations

import logging
import uuid
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ponto.db.models import AuditLog

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def append(
        self,
        user_id: uuid.UUID | None,
        action: str,
        details: str | None = None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None: ...


class SqlAuditSink:
    """Appends audit rows in a session of its own so failures never reach the caller."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def append(
        self,
        user_id: uuid.UUID | None,
        action: str,
        details: str | None = None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        try:
            with self._session_factory() as db:
                db.add(
                    AuditLog(
                        user_id=user_id,
                        action=action,
                        details=details,
                        ip_address=ip_address,
                        user_agent=(user_agent or "")[:255] or None,
                    )
                )
                db.commit()
        except SQLAlchemyError:
            logger.exception("Failed to append audit entry '%s' for user %s", action, user_id)
