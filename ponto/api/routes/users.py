from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from ponto.api.deps import get_current_principal, get_punch_evaluator, get_storage
from ponto.db.storage import SqlStorage
from ponto.schemas.auth import CurrentPrincipal
from ponto.schemas.user import EnrollFaceRequest, EnrollFaceResponse, UserResponse
from ponto.services.punches import PunchEvaluator

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
def read_me(
    principal: CurrentPrincipal = Depends(get_current_principal),
    storage: SqlStorage = Depends(get_storage),
):
    user = storage.get_user(principal.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return user


@router.post("/{user_id}/enroll-face", response_model=EnrollFaceResponse)
def enroll_face(
    user_id: uuid.UUID,
    payload: EnrollFaceRequest,
    principal: CurrentPrincipal = Depends(get_current_principal),
    evaluator: PunchEvaluator = Depends(get_punch_evaluator),
):
    if principal.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized.")
    return evaluator.enroll_face(user_id, payload.image_base64)
