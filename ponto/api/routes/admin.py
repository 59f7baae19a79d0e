from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ponto.api.deps import db_session, get_audit_sink, get_justification_workflow, require_roles
from ponto.core.exceptions import StorageError
from ponto.core.security import hash_password
from ponto.db.models import Justification, Punch, User
from ponto.db.storage import user_record
from ponto.schemas.admin import AdminStats
from ponto.schemas.auth import CurrentPrincipal
from ponto.schemas.justification import AdminJustificationResponse, JustificationResponse, JustificationReview
from ponto.schemas.user import UserCreate, UserResponse, UserUpdate
from ponto.services.audit import AuditSink
from ponto.services.justifications import JustificationWorkflow
from ponto.services.storage import JUSTIFICATION_PENDING

router = APIRouter(prefix="/admin", tags=["admin"])
reviewer = require_roles("admin", "manager")


def _user_or_404(db: Session, user_id: uuid.UUID) -> User:
    row = db.get(User, user_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return row


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(f"Failed to {action}: {exc}") from exc


@router.get("/stats", response_model=AdminStats)
def stats(
    _principal: CurrentPrincipal = Depends(reviewer),
    db: Session = db_session(),
):
    return AdminStats(
        total_users=db.scalar(select(func.count()).select_from(User).where(User.is_active.is_(True))) or 0,
        total_punches=db.scalar(select(func.count()).select_from(Punch)) or 0,
        pending_justifications=db.scalar(
            select(func.count()).select_from(Justification).where(Justification.status == JUSTIFICATION_PENDING)
        )
        or 0,
    )


@router.get("/users", response_model=list[UserResponse])
def list_users(
    include_inactive: bool = False,
    _principal: CurrentPrincipal = Depends(reviewer),
    db: Session = db_session(),
):
    query = select(User).order_by(User.name)
    if not include_inactive:
        query = query.where(User.is_active.is_(True))
    return [user_record(row) for row in db.scalars(query).all()]


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    principal: CurrentPrincipal = Depends(reviewer),
    db: Session = db_session(),
    audit: AuditSink = Depends(get_audit_sink),
):
    if db.scalar(select(User.id).where(User.username == payload.username)) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists.")

    row = User(
        username=payload.username,
        password_hash=hash_password(payload.password),
        name=payload.name,
        email=payload.email,
        department=payload.department,
        role=payload.role,
        is_active=True,
    )
    db.add(row)
    _commit(db, "create user")
    db.refresh(row)
    audit.append(principal.user_id, "user_create", f"User {row.username} created with role {row.role}")
    return user_record(row)


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    principal: CurrentPrincipal = Depends(reviewer),
    db: Session = db_session(),
    audit: AuditSink = Depends(get_audit_sink),
):
    changes = payload.model_dump(exclude_unset=True)
    if principal.user_id == user_id and changes.get("is_active") is False:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account.")
    row = _user_or_404(db, user_id)
    password = changes.pop("password", None)
    for field, value in changes.items():
        setattr(row, field, value)
    if password:
        row.password_hash = hash_password(password)
    _commit(db, "update user")
    db.refresh(row)

    changed = sorted(changes) + (["password"] if password else [])
    audit.append(principal.user_id, "user_update", f"User {row.username} updated: {', '.join(changed) or 'no changes'}")
    return user_record(row)


@router.delete("/users/{user_id}", response_model=UserResponse)
def deactivate_user(
    user_id: uuid.UUID,
    principal: CurrentPrincipal = Depends(reviewer),
    db: Session = db_session(),
    audit: AuditSink = Depends(get_audit_sink),
):
    if principal.user_id == user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account.")
    # Punches and justifications keep referencing the user, so the row stays.
    row = _user_or_404(db, user_id)
    row.is_active = False
    _commit(db, "deactivate user")
    db.refresh(row)
    audit.append(principal.user_id, "user_deactivate", f"User {row.username} deactivated")
    return user_record(row)


@router.get("/justifications", response_model=list[AdminJustificationResponse])
def list_justifications(
    status_filter: Literal["pending", "approved", "rejected"] | None = Query(default=None, alias="status"),
    limit: int = 200,
    _principal: CurrentPrincipal = Depends(reviewer),
    db: Session = db_session(),
):
    query = select(Justification).options(joinedload(Justification.user), joinedload(Justification.punch))
    if status_filter is not None:
        query = query.where(Justification.status == status_filter)
    rows = db.scalars(query.order_by(desc(Justification.created_at)).limit(max(1, min(1000, limit)))).all()
    return [
        AdminJustificationResponse(
            id=row.id,
            punch_id=row.punch_id,
            user_id=row.user_id,
            reason=row.reason,
            status=row.status,
            created_at=row.created_at,
            reviewed_by=row.reviewed_by,
            reviewed_at=row.reviewed_at,
            user_name=row.user.name,
            punch_type=row.punch.type,
            punch_timestamp=row.punch.timestamp,
            face_matched=row.punch.face_matched,
            gps_valid=row.punch.gps_valid,
        )
        for row in rows
    ]


@router.patch("/justifications/{justification_id}", response_model=JustificationResponse)
def review_justification(
    justification_id: uuid.UUID,
    payload: JustificationReview,
    principal: CurrentPrincipal = Depends(reviewer),
    workflow: JustificationWorkflow = Depends(get_justification_workflow),
):
    return workflow.review(justification_id, payload.status, principal.user_id, principal.role)
