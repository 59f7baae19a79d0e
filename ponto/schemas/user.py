from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Role = Literal["employee", "manager", "admin"]


class UserResponse(BaseModel):
    id: uuid.UUID
    username: str
    name: str
    email: str
    department: str | None = None
    role: str
    enrolled_at: datetime | None = None
    is_active: bool = True

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    username: str = Field(min_length=2, max_length=80)
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=255)
    department: str | None = Field(default=None, max_length=120)
    role: Role = "employee"


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    email: str | None = Field(default=None, min_length=3, max_length=255)
    department: str | None = Field(default=None, max_length=120)
    role: Role | None = None
    password: str | None = Field(default=None, min_length=6, max_length=128)
    is_active: bool | None = None

    @field_validator("name", "email", "role", "is_active")
    @classmethod
    def reject_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared.
        if value is None:
            raise ValueError("must not be null")
        return value


class EnrollFaceRequest(BaseModel):
    image_base64: str = Field(min_length=1)


class EnrollFaceResponse(BaseModel):
    embedding_stored: bool
    enrolled_at: datetime
