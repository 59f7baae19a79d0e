from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from ponto.core.exceptions import ConflictError
from ponto.services.storage import (
    JUSTIFICATION_APPROVED,
    JUSTIFICATION_PENDING,
    JustificationRecord,
    NewPunch,
    PunchRecord,
    UserRecord,
)


class InMemoryStorage:
    def __init__(self) -> None:
        self.users: dict[uuid.UUID, UserRecord] = {}
        self.embeddings: dict[uuid.UUID, str] = {}
        self.punches: dict[uuid.UUID, PunchRecord] = {}
        self.justifications: dict[uuid.UUID, JustificationRecord] = {}
        self._lock = threading.Lock()

    def add_user(self, role: str = "employee", username: str | None = None) -> UserRecord:
        user_id = uuid.uuid4()
        user = UserRecord(
            id=user_id,
            username=username or f"user-{user_id.hex[:8]}",
            name="Test User",
            email="user@example.com",
            role=role,
        )
        self.users[user_id] = user
        return user

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_embedding(self, user_id):
        return self.embeddings.get(user_id)

    def set_embedding(self, user_id, serialized, enrolled_at):
        user = self.users.get(user_id)
        if user is None:
            return None
        self.embeddings[user_id] = serialized
        self.users[user_id] = replace(user, enrolled_at=enrolled_at)
        return self.users[user_id]

    def create_punch(self, punch: NewPunch) -> PunchRecord:
        record = PunchRecord(
            id=uuid.uuid4(),
            user_id=punch.user_id,
            type=punch.type,
            timestamp=datetime.now(timezone.utc),
            latitude=punch.latitude,
            longitude=punch.longitude,
            gps_accuracy=punch.gps_accuracy,
            face_match_score=punch.face_match_score,
            face_matched=punch.face_matched,
            gps_valid=punch.gps_valid,
            status=punch.status,
        )
        self.punches[record.id] = record
        return record

    def get_punch(self, punch_id):
        return self.punches.get(punch_id)

    def update_punch_status(self, punch_id, status):
        punch = self.punches.get(punch_id)
        if punch is None:
            return None
        self.punches[punch_id] = replace(punch, status=status)
        return self.punches[punch_id]

    def create_justification(self, punch_id, user_id, reason):
        with self._lock:
            if self._open_justification(punch_id) is not None:
                raise ConflictError("Punch already has a justification under review or approved.")
            record = JustificationRecord(
                id=uuid.uuid4(),
                punch_id=punch_id,
                user_id=user_id,
                reason=reason,
                status=JUSTIFICATION_PENDING,
                created_at=datetime.now(timezone.utc),
            )
            self.justifications[record.id] = record
            return record

    def get_justification(self, justification_id):
        return self.justifications.get(justification_id)

    def find_open_justification(self, punch_id):
        return self._open_justification(punch_id)

    def _open_justification(self, punch_id):
        for record in self.justifications.values():
            if record.punch_id == punch_id and record.status in (JUSTIFICATION_PENDING, JUSTIFICATION_APPROVED):
                return record
        return None

    def update_justification_atomic(self, justification_id, *, status, reviewed_by, reviewed_at, punch_status=None):
        with self._lock:
            current = self.justifications.get(justification_id)
            if current is None or current.status != JUSTIFICATION_PENDING:
                return None
            updated = replace(current, status=status, reviewed_by=reviewed_by, reviewed_at=reviewed_at)
            self.justifications[justification_id] = updated
            if punch_status is not None:
                self.update_punch_status(current.punch_id, punch_status)
            return updated


class RecordingAuditSink:
    def __init__(self) -> None:
        self.entries: list[tuple] = []

    def append(self, user_id, action, details=None, *, ip_address=None, user_agent=None):
        self.entries.append((user_id, action, details))

    def actions(self) -> list[str]:
        return [entry[1] for entry in self.entries]
