from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from ponto.api.deps import db_session, get_audit_sink
from ponto.core.security import create_access_token, verify_password
from ponto.db.models import User
from ponto.db.storage import user_record
from ponto.schemas.auth import LoginRequest, TokenResponse
from ponto.schemas.user import UserResponse
from ponto.services.audit import AuditSink

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = db_session(),
    audit: AuditSink = Depends(get_audit_sink),
):
    user = db.scalar(select(User).where(User.username == payload.username, User.is_active.is_(True)))
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials.")

    token, expires_at = create_access_token(subject=str(user.id), role=user.role)
    audit.append(
        user.id,
        "login",
        "Login succeeded",
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return TokenResponse(
        access_token=token,
        expires_at=expires_at,
        user=UserResponse.model_validate(user_record(user)),
    )
