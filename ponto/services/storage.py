"""Storage contract used by the punch and justification services.

Lookups return ``None`` when the record does not exist; any failure of the
underlying store is raised as :class:`ponto.core.exceptions.StorageError`.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

PUNCH_TYPES = ("entry", "exit")
PUNCH_OK = "ok"
PUNCH_PENDING = "pending"

JUSTIFICATION_PENDING = "pending"
JUSTIFICATION_APPROVED = "approved"
JUSTIFICATION_REJECTED = "rejected"
REVIEW_DECISIONS = (JUSTIFICATION_APPROVED, JUSTIFICATION_REJECTED)


@dataclass(frozen=True)
class UserRecord:
    id: uuid.UUID
    username: str
    name: str
    email: str
    role: str
    department: str | None = None
    enrolled_at: datetime | None = None
    is_active: bool = True

    @property
    def is_enrolled(self) -> bool:
        return self.enrolled_at is not None


@dataclass(frozen=True)
class NewPunch:
    user_id: uuid.UUID
    type: str
    latitude: float | None
    longitude: float | None
    gps_accuracy: float | None
    face_match_score: float
    face_matched: bool
    gps_valid: bool
    status: str


@dataclass(frozen=True)
class PunchRecord:
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    timestamp: datetime
    latitude: float | None
    longitude: float | None
    gps_accuracy: float | None
    face_match_score: float
    face_matched: bool
    gps_valid: bool
    status: str


@dataclass(frozen=True)
class JustificationRecord:
    id: uuid.UUID
    punch_id: uuid.UUID
    user_id: uuid.UUID
    reason: str
    status: str
    created_at: datetime
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = None


class Storage(Protocol):
    def get_user(self, user_id: uuid.UUID) -> UserRecord | None: ...

    def get_embedding(self, user_id: uuid.UUID) -> str | None: ...

    def set_embedding(self, user_id: uuid.UUID, serialized: str, enrolled_at: datetime) -> UserRecord | None: ...

    def create_punch(self, punch: NewPunch) -> PunchRecord: ...

    def get_punch(self, punch_id: uuid.UUID) -> PunchRecord | None: ...

    def update_punch_status(self, punch_id: uuid.UUID, status: str) -> PunchRecord | None: ...

    def create_justification(self, punch_id: uuid.UUID, user_id: uuid.UUID, reason: str) -> JustificationRecord:
        """Insert a pending justification; raises ConflictError if the punch already has an open one."""
        ...

    def get_justification(self, justification_id: uuid.UUID) -> JustificationRecord | None: ...

    def find_open_justification(self, punch_id: uuid.UUID) -> JustificationRecord | None: ...

    def update_justification_atomic(
        self,
        justification_id: uuid.UUID,
        *,
        status: str,
        reviewed_by: uuid.UUID,
        reviewed_at: datetime,
        punch_status: str | None = None,
    ) -> JustificationRecord | None:
        """Move a pending justification to ``status`` in a single transaction.

        When ``punch_status`` is given, the referenced punch is updated in the
        same transaction. Returns ``None`` when the justification is missing
        or no longer pending, in which case nothing is written.
        """
        ...
