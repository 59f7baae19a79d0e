from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ponto.core.config import get_settings
from ponto.core.security import safe_decode_token
from ponto.db.models import User
from ponto.db.session import SessionLocal, get_db
from ponto.db.storage import SqlStorage
from ponto.schemas.auth import CurrentPrincipal
from ponto.services.audit import AuditSink, SqlAuditSink
from ponto.services.justifications import JustificationWorkflow
from ponto.services.matcher import get_matcher
from ponto.services.punches import PunchEvaluator

bearer_scheme = HTTPBearer(auto_error=False)


def db_session() -> Session:
    return Depends(get_db)  # type: ignore[return-value]


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = db_session(),
) -> CurrentPrincipal:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token.")
    payload = safe_decode_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token.")

    try:
        user_id = uuid.UUID(str(payload.get("sub", "")))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token.")

    # Role comes from the database so demotions apply to tokens already issued.
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token.")
    return CurrentPrincipal(user_id=user.id, username=user.username, role=user.role)


def require_roles(*allowed_roles: str) -> Callable[[CurrentPrincipal], CurrentPrincipal]:
    allowed = set(allowed_roles)

    def _checker(principal: CurrentPrincipal = Depends(get_current_principal)) -> CurrentPrincipal:
        if principal.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized.")
        return principal

    return _checker


def get_storage(db: Session = db_session()) -> SqlStorage:
    return SqlStorage(db)


def get_audit_sink() -> AuditSink:
    return SqlAuditSink(SessionLocal)


def get_punch_evaluator(
    storage: SqlStorage = Depends(get_storage),
    audit: AuditSink = Depends(get_audit_sink),
) -> PunchEvaluator:
    settings = get_settings()
    return PunchEvaluator(storage, audit, get_matcher(), max_gps_accuracy=settings.max_gps_accuracy_m)


def get_justification_workflow(
    storage: SqlStorage = Depends(get_storage),
    audit: AuditSink = Depends(get_audit_sink),
) -> JustificationWorkflow:
    settings = get_settings()
    return JustificationWorkflow(storage, audit, max_reason_length=settings.max_reason_length)
