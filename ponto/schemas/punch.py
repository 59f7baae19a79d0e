from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class PunchCreate(BaseModel):
    image_base64: str
    type: Literal["entry", "exit"]
    latitude: float | None = None
    longitude: float | None = None
    gps_accuracy: float | None = None


class PunchResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    timestamp: datetime
    latitude: float | None = None
    longitude: float | None = None
    gps_accuracy: float | None = None
    face_match_score: float
    face_matched: bool
    gps_valid: bool
    status: str

    class Config:
        from_attributes = True
