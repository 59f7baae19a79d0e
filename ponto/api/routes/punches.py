from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ponto.api.deps import db_session, get_current_principal, get_punch_evaluator
from ponto.db.models import Punch
from ponto.schemas.auth import CurrentPrincipal
from ponto.schemas.punch import PunchCreate, PunchResponse
from ponto.services.punches import PunchEvaluator
from ponto.services.storage import PUNCH_PENDING

router = APIRouter(prefix="/punches", tags=["punches"])

PERIOD_DAYS = {"week": 7, "month": 30}


@router.post("", response_model=PunchResponse, status_code=status.HTTP_201_CREATED)
def register_punch(
    payload: PunchCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    evaluator: PunchEvaluator = Depends(get_punch_evaluator),
):
    # The owner always comes from the token, never from the request body.
    return evaluator.evaluate_punch(
        principal.user_id,
        payload.type,
        payload.image_base64,
        latitude=payload.latitude,
        longitude=payload.longitude,
        accuracy=payload.gps_accuracy,
    )


@router.get("", response_model=list[PunchResponse])
def list_punches(
    period: Literal["all", "week", "month"] = "all",
    principal: CurrentPrincipal = Depends(get_current_principal),
    db: Session = db_session(),
):
    query = select(Punch).where(Punch.user_id == principal.user_id)
    if period in PERIOD_DAYS:
        since = datetime.now(timezone.utc) - timedelta(days=PERIOD_DAYS[period])
        query = query.where(Punch.timestamp >= since)
    return db.scalars(query.order_by(desc(Punch.timestamp))).all()


@router.get("/last", response_model=PunchResponse)
def last_punch(
    principal: CurrentPrincipal = Depends(get_current_principal),
    db: Session = db_session(),
):
    row = db.scalar(
        select(Punch).where(Punch.user_id == principal.user_id).order_by(desc(Punch.timestamp)).limit(1)
    )
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No punches found.")
    return row


@router.get("/pending", response_model=list[PunchResponse])
def pending_punches(
    principal: CurrentPrincipal = Depends(get_current_principal),
    db: Session = db_session(),
):
    rows = db.scalars(
        select(Punch)
        .where(Punch.user_id == principal.user_id, Punch.status == PUNCH_PENDING)
        .order_by(desc(Punch.timestamp))
    ).all()
    return rows
