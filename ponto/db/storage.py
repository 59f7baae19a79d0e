from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ponto.core.exceptions import ConflictError, StorageError
from ponto.services.encryption import EmbeddingCrypto, embedding_crypto
from ponto.services.storage import (
    JUSTIFICATION_APPROVED,
    JUSTIFICATION_PENDING,
    JustificationRecord,
    NewPunch,
    PunchRecord,
    UserRecord,
)

from .models import Justification, Punch, User

logger = logging.getLogger(__name__)


def user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        username=row.username,
        name=row.name,
        email=row.email,
        role=row.role,
        department=row.department,
        enrolled_at=row.enrolled_at if row.face_embedding else None,
        is_active=row.is_active,
    )


def punch_record(row: Punch) -> PunchRecord:
    return PunchRecord(
        id=row.id,
        user_id=row.user_id,
        type=row.type,
        timestamp=row.timestamp,
        latitude=row.latitude,
        longitude=row.longitude,
        gps_accuracy=row.gps_accuracy,
        face_match_score=row.face_match_score,
        face_matched=row.face_matched,
        gps_valid=row.gps_valid,
        status=row.status,
    )


def justification_record(row: Justification) -> JustificationRecord:
    return JustificationRecord(
        id=row.id,
        punch_id=row.punch_id,
        user_id=row.user_id,
        reason=row.reason,
        status=row.status,
        created_at=row.created_at,
        reviewed_by=row.reviewed_by,
        reviewed_at=row.reviewed_at,
    )


class SqlStorage:
    def __init__(self, db: Session, crypto: EmbeddingCrypto = embedding_crypto) -> None:
        self.db = db
        self.crypto = crypto

    @contextmanager
    def _errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to {action}: {exc}") from exc

    def get_user(self, user_id: uuid.UUID) -> UserRecord | None:
        with self._errors("load user"):
            row = self.db.get(User, user_id)
        return user_record(row) if row is not None else None

    def get_embedding(self, user_id: uuid.UUID) -> str | None:
        with self._errors("load embedding"):
            ciphertext = self.db.scalar(select(User.face_embedding).where(User.id == user_id))
        if not ciphertext:
            return None
        serialized = self.crypto.decrypt(ciphertext)
        if serialized is None:
            logger.warning("Stored embedding for user %s could not be decrypted", user_id)
        return serialized

    def set_embedding(self, user_id: uuid.UUID, serialized: str, enrolled_at: datetime) -> UserRecord | None:
        with self._errors("store embedding"):
            row = self.db.get(User, user_id)
            if row is None:
                return None
            row.face_embedding = self.crypto.encrypt(serialized)
            row.enrolled_at = enrolled_at
            self.db.commit()
            self.db.refresh(row)
            return user_record(row)

    def create_punch(self, punch: NewPunch) -> PunchRecord:
        with self._errors("create punch"):
            row = Punch(
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
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return punch_record(row)

    def get_punch(self, punch_id: uuid.UUID) -> PunchRecord | None:
        with self._errors("load punch"):
            row = self.db.get(Punch, punch_id)
        return punch_record(row) if row is not None else None

    def update_punch_status(self, punch_id: uuid.UUID, status: str) -> PunchRecord | None:
        with self._errors("update punch status"):
            row = self.db.get(Punch, punch_id)
            if row is None:
                return None
            row.status = status
            self.db.commit()
            self.db.refresh(row)
            return punch_record(row)

    def create_justification(self, punch_id: uuid.UUID, user_id: uuid.UUID, reason: str) -> JustificationRecord:
        with self._errors("create justification"):
            row = Justification(
                punch_id=punch_id,
                user_id=user_id,
                reason=reason,
                status=JUSTIFICATION_PENDING,
                created_at=datetime.now(timezone.utc),
            )
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError("Punch already has a justification under review or approved.") from exc
            self.db.refresh(row)
            return justification_record(row)

    def get_justification(self, justification_id: uuid.UUID) -> JustificationRecord | None:
        with self._errors("load justification"):
            row = self.db.get(Justification, justification_id)
        return justification_record(row) if row is not None else None

    def find_open_justification(self, punch_id: uuid.UUID) -> JustificationRecord | None:
        with self._errors("load justifications"):
            row = self.db.scalar(
                select(Justification)
                .where(
                    Justification.punch_id == punch_id,
                    Justification.status.in_((JUSTIFICATION_PENDING, JUSTIFICATION_APPROVED)),
                )
                .order_by(desc(Justification.created_at))
                .limit(1)
            )
        return justification_record(row) if row is not None else None

    def update_justification_atomic(
        self,
        justification_id: uuid.UUID,
        *,
        status: str,
        reviewed_by: uuid.UUID,
        reviewed_at: datetime,
        punch_status: str | None = None,
    ) -> JustificationRecord | None:
        with self._errors("review justification"):
            # Compare-and-swap on status: only one concurrent reviewer can match the row.
            result = self.db.execute(
                update(Justification)
                .where(Justification.id == justification_id, Justification.status == JUSTIFICATION_PENDING)
                .values(status=status, reviewed_by=reviewed_by, reviewed_at=reviewed_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                return None

            if punch_status is not None:
                punch_id = self.db.scalar(
                    select(Justification.punch_id).where(Justification.id == justification_id)
                )
                self.db.execute(
                    update(Punch)
                    .where(Punch.id == punch_id)
                    .values(status=punch_status)
                    .execution_options(synchronize_session=False)
                )

            self.db.commit()
            row = self.db.get(Justification, justification_id)
            return justification_record(row) if row is not None else None
