"""Review workflow for punches that failed face or GPS validation.

A justification starts ``pending`` and is reviewed exactly once, ending in
``approved`` or ``rejected``. Approval also marks the punch ``ok``; both
changes are written together by the storage layer. At most one open
(pending or approved) justification may exist per punch; after a rejection
the employee may submit a new one.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from ponto.core.exceptions import (
    AlreadyReviewedError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from ponto.core.security import REVIEWER_ROLES, require_role

from .audit import AuditSink
from .storage import (
    JUSTIFICATION_APPROVED,
    JUSTIFICATION_PENDING,
    PUNCH_OK,
    PUNCH_PENDING,
    REVIEW_DECISIONS,
    JustificationRecord,
    Storage,
)

MAX_REASON_LENGTH = 500

logger = logging.getLogger(__name__)


class JustificationWorkflow:
    def __init__(self, storage: Storage, audit: AuditSink, max_reason_length: int = MAX_REASON_LENGTH) -> None:
        self.storage = storage
        self.audit = audit
        self.max_reason_length = max_reason_length

    def _clean_reason(self, reason: str | None) -> str:
        text = reason.strip() if isinstance(reason, str) else ""
        if not text:
            raise ValidationError("A reason is required.")
        if len(text) > self.max_reason_length:
            raise ValidationError(f"Reason must be at most {self.max_reason_length} characters.")
        return text

    def submit(self, punch_id: uuid.UUID, user_id: uuid.UUID, reason: str) -> JustificationRecord:
        text = self._clean_reason(reason)

        punch = self.storage.get_punch(punch_id)
        if punch is None:
            raise NotFoundError("Punch not found.")
        if punch.user_id != user_id:
            raise ForbiddenError("Not authorized.")
        if punch.status != PUNCH_PENDING:
            raise ConflictError("Punch does not need a justification.")
        if self.storage.find_open_justification(punch_id) is not None:
            raise ConflictError("Punch already has a justification under review or approved.")

        justification = self.storage.create_justification(punch_id, user_id, text)
        logger.info("Justification %s submitted for punch %s", justification.id, punch_id)
        self.audit.append(user_id, "justification_submit", f"Justification submitted for punch {punch_id}")
        return justification

    def review(
        self,
        justification_id: uuid.UUID,
        decision: str,
        reviewer_id: uuid.UUID,
        reviewer_role: str | None,
    ) -> JustificationRecord:
        require_role(reviewer_role, REVIEWER_ROLES)
        if decision not in REVIEW_DECISIONS:
            raise ValidationError("Decision must be 'approved' or 'rejected'.")

        current = self.storage.get_justification(justification_id)
        if current is None:
            raise NotFoundError("Justification not found.")
        if current.status != JUSTIFICATION_PENDING:
            raise AlreadyReviewedError("Justification has already been reviewed.")

        updated = self.storage.update_justification_atomic(
            justification_id,
            status=decision,
            reviewed_by=reviewer_id,
            reviewed_at=datetime.now(timezone.utc),
            punch_status=PUNCH_OK if decision == JUSTIFICATION_APPROVED else None,
        )
        if updated is None:
            # Another reviewer won the race between the read and the update.
            raise AlreadyReviewedError("Justification has already been reviewed.")

        logger.info("Justification %s %s by %s", justification_id, decision, reviewer_id)
        self.audit.append(
            reviewer_id,
            "justification_review",
            f"Justification {justification_id} {decision} (punch {updated.punch_id})",
        )
        return updated
