from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from ponto.core.exceptions import NotFoundError, ValidationError

from .audit import AuditSink
from .embedding import generate_embedding, serialize_embedding
from .location import MAX_GPS_ACCURACY_METERS, is_valid_location
from .matcher import NO_MATCH, FaceMatcher, MatchResult
from .storage import PUNCH_OK, PUNCH_PENDING, PUNCH_TYPES, NewPunch, PunchRecord, Storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrollmentResult:
    embedding_stored: bool
    enrolled_at: datetime


def _check_image(image_payload: bytes | str | None) -> None:
    if not isinstance(image_payload, (bytes, bytearray, str)) or not image_payload:
        raise ValidationError("An image capture is required.")


def _check_coordinate(name: str, value: object) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number.")


def _stored_coordinate(value: float | None) -> float | None:
    # NaN and infinity only invalidate the fix; they are not persisted.
    return value if value is not None and math.isfinite(value) else None


def punch_status(face_matched: bool, gps_valid: bool) -> str:
    return PUNCH_OK if face_matched and gps_valid else PUNCH_PENDING


class PunchEvaluator:
    def __init__(
        self,
        storage: Storage,
        audit: AuditSink,
        matcher: FaceMatcher,
        max_gps_accuracy: float = MAX_GPS_ACCURACY_METERS,
    ) -> None:
        self.storage = storage
        self.audit = audit
        self.matcher = matcher
        self.max_gps_accuracy = max_gps_accuracy

    def evaluate_punch(
        self,
        user_id: uuid.UUID,
        punch_type: str,
        image_payload: bytes | str,
        latitude: float | None = None,
        longitude: float | None = None,
        accuracy: float | None = None,
    ) -> PunchRecord:
        """Validate a capture and persist the resulting punch.

        Face and GPS problems never raise: they only turn the punch status
        into ``pending`` so a person can review it later.
        """
        if punch_type not in PUNCH_TYPES:
            raise ValidationError("Punch type must be 'entry' or 'exit'.")
        _check_image(image_payload)
        _check_coordinate("latitude", latitude)
        _check_coordinate("longitude", longitude)
        _check_coordinate("accuracy", accuracy)

        user = self.storage.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found.")

        gps_valid = is_valid_location(latitude, longitude, accuracy, max_accuracy=self.max_gps_accuracy)
        match = self._match_face(user_id, image_payload)
        status = punch_status(match.matched, gps_valid)

        punch = self.storage.create_punch(
            NewPunch(
                user_id=user_id,
                type=punch_type,
                latitude=_stored_coordinate(latitude),
                longitude=_stored_coordinate(longitude),
                gps_accuracy=_stored_coordinate(accuracy),
                face_match_score=match.score,
                face_matched=match.matched,
                gps_valid=gps_valid,
                status=status,
            )
        )
        logger.info(
            "Punch %s registered for user %s: face_matched=%s gps_valid=%s status=%s",
            punch_type,
            user_id,
            match.matched,
            gps_valid,
            status,
        )
        self.audit.append(user_id, "punch_register", f"Punch {punch_type} registered - status: {status}")
        return punch

    def _match_face(self, user_id: uuid.UUID, image_payload: bytes | str) -> MatchResult:
        stored = self.storage.get_embedding(user_id)
        if stored is None:
            return NO_MATCH
        return self.matcher.match(generate_embedding(image_payload), stored)

    def enroll_face(self, user_id: uuid.UUID, image_payload: bytes | str) -> EnrollmentResult:
        """Store the reference embedding for a user, replacing any previous one."""
        _check_image(image_payload)
        serialized = serialize_embedding(generate_embedding(image_payload))
        enrolled_at = datetime.now(timezone.utc)

        user = self.storage.set_embedding(user_id, serialized, enrolled_at)
        if user is None:
            raise NotFoundError("User not found.")

        logger.info("Face enrolled for user %s", user_id)
        self.audit.append(user_id, "enroll_face", "Face enrollment completed")
        return EnrollmentResult(embedding_stored=True, enrolled_at=enrolled_at)
