from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from .user import UserResponse


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=80)
    password: str = Field(min_length=1, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class CurrentPrincipal(BaseModel):
    user_id: uuid.UUID
    username: str
    role: str
