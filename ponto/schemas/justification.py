from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class JustificationCreate(BaseModel):
    punch_id: uuid.UUID
    reason: str


class JustificationReview(BaseModel):
    status: Literal["approved", "rejected"]


class JustificationResponse(BaseModel):
    id: uuid.UUID
    punch_id: uuid.UUID
    user_id: uuid.UUID
    reason: str
    status: str
    created_at: datetime
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = None

    class Config:
        from_attributes = True


class AdminJustificationResponse(JustificationResponse):
    user_name: str
    punch_type: str
    punch_timestamp: datetime
    face_matched: bool
    gps_valid: bool
