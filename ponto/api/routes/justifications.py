from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ponto.api.deps import db_session, get_current_principal, get_justification_workflow
from ponto.db.models import Justification
from ponto.schemas.auth import CurrentPrincipal
from ponto.schemas.justification import JustificationCreate, JustificationResponse
from ponto.services.justifications import JustificationWorkflow

router = APIRouter(prefix="/justifications", tags=["justifications"])


@router.post("", response_model=JustificationResponse, status_code=status.HTTP_201_CREATED)
def submit_justification(
    payload: JustificationCreate,
    principal: CurrentPrincipal = Depends(get_current_principal),
    workflow: JustificationWorkflow = Depends(get_justification_workflow),
):
    return workflow.submit(payload.punch_id, principal.user_id, payload.reason)


@router.get("", response_model=list[JustificationResponse])
def list_my_justifications(
    principal: CurrentPrincipal = Depends(get_current_principal),
    db: Session = db_session(),
):
    return db.scalars(
        select(Justification)
        .where(Justification.user_id == principal.user_id)
        .order_by(desc(Justification.created_at))
    ).all()
