import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from ponto.core.exceptions import ConflictError
from ponto.core.security import hash_password
from ponto.db.models import AuditLog, Justification, User
from ponto.db.session import SessionLocal
from ponto.db.storage import SqlStorage
from ponto.services.audit import SqlAuditSink
from ponto.services.embedding import generate_embedding, serialize_embedding
from ponto.services.storage import NewPunch


@pytest.fixture()
def sql_storage(db_session):
    return SqlStorage(db_session)


@pytest.fixture()
def user(db_session):
    row = User(
        username="joao.silva",
        password_hash=hash_password("123456"),
        name="Joao Silva",
        email="joao.silva@example.com",
        department="Technology",
        role="employee",
    )
    db_session.add(row)
    db_session.commit()
    return row


def _new_punch(user_id, status="pending"):
    return NewPunch(
        user_id=user_id,
        type="entry",
        latitude=None,
        longitude=None,
        gps_accuracy=None,
        face_match_score=0.0,
        face_matched=False,
        gps_valid=False,
        status=status,
    )


def test_user_without_embedding_reads_as_not_enrolled(sql_storage, user):
    record = sql_storage.get_user(user.id)
    assert record.username == "joao.silva"
    assert record.is_enrolled is False
    assert sql_storage.get_embedding(user.id) is None


def test_embedding_is_encrypted_at_rest(db_session, sql_storage, user):
    serialized = serialize_embedding(generate_embedding("selfie"))
    record = sql_storage.set_embedding(user.id, serialized, datetime.now(timezone.utc))

    assert record.is_enrolled is True
    stored = db_session.scalar(select(User.face_embedding).where(User.id == user.id))
    assert stored != serialized
    assert "[" not in stored
    assert sql_storage.get_embedding(user.id) == serialized


def test_undecryptable_embedding_reads_as_absent(db_session, sql_storage, user):
    user.face_embedding = "not-a-fernet-token"
    db_session.commit()
    assert sql_storage.get_embedding(user.id) is None


def test_punch_timestamp_is_assigned_by_storage(sql_storage, user):
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    punch = sql_storage.create_punch(_new_punch(user.id))

    assert punch.timestamp.replace(tzinfo=None) >= before.replace(microsecond=0)
    assert sql_storage.get_punch(punch.id) == punch


def test_update_punch_status(sql_storage, user):
    punch = sql_storage.create_punch(_new_punch(user.id))
    assert sql_storage.update_punch_status(punch.id, "ok").status == "ok"
    assert sql_storage.get_punch(punch.id).status == "ok"


def test_atomic_review_updates_both_records_once(db_session, sql_storage, user):
    punch = sql_storage.create_punch(_new_punch(user.id))
    justification = sql_storage.create_justification(punch.id, user.id, "forgot to enroll")
    assert sql_storage.find_open_justification(punch.id) == justification

    reviewed_at = datetime.now(timezone.utc)
    approved = sql_storage.update_justification_atomic(
        justification.id,
        status="approved",
        reviewed_by=user.id,
        reviewed_at=reviewed_at,
        punch_status="ok",
    )
    assert approved.status == "approved"
    assert approved.reviewed_by == user.id
    assert sql_storage.get_punch(punch.id).status == "ok"

    # A second reviewer no longer matches the pending row.
    with SessionLocal() as other_session:
        second = SqlStorage(other_session).update_justification_atomic(
            justification.id,
            status="rejected",
            reviewed_by=user.id,
            reviewed_at=reviewed_at,
        )
    assert second is None
    assert sql_storage.get_justification(justification.id).status == "approved"


def test_rejection_leaves_punch_untouched(sql_storage, user):
    punch = sql_storage.create_punch(_new_punch(user.id))
    justification = sql_storage.create_justification(punch.id, user.id, "reason")

    rejected = sql_storage.update_justification_atomic(
        justification.id,
        status="rejected",
        reviewed_by=user.id,
        reviewed_at=datetime.now(timezone.utc),
    )

    assert rejected.status == "rejected"
    assert sql_storage.get_punch(punch.id).status == "pending"
    assert sql_storage.find_open_justification(punch.id) is None


def test_concurrent_submissions_leave_one_open_justification(db_session, sql_storage, user):
    punch = sql_storage.create_punch(_new_punch(user.id))

    with SessionLocal() as other_session:
        other = SqlStorage(other_session)
        # Both sides see no open justification before either inserts.
        assert sql_storage.find_open_justification(punch.id) is None
        assert other.find_open_justification(punch.id) is None

        first = sql_storage.create_justification(punch.id, user.id, "first")
        with pytest.raises(ConflictError):
            other.create_justification(punch.id, user.id, "second")

    rows = db_session.scalars(select(Justification).where(Justification.punch_id == punch.id)).all()
    assert [row.id for row in rows] == [first.id]


def test_rejected_justification_frees_the_punch_for_a_new_one(sql_storage, user):
    punch = sql_storage.create_punch(_new_punch(user.id))
    first = sql_storage.create_justification(punch.id, user.id, "first")
    sql_storage.update_justification_atomic(
        first.id, status="rejected", reviewed_by=user.id, reviewed_at=datetime.now(timezone.utc)
    )

    second = sql_storage.create_justification(punch.id, user.id, "second")
    assert sql_storage.find_open_justification(punch.id) == second


def test_missing_records_read_as_none(sql_storage, user):
    missing = uuid.uuid4()
    assert sql_storage.get_user(missing) is None
    assert sql_storage.get_punch(missing) is None
    assert sql_storage.get_justification(missing) is None
    assert sql_storage.update_punch_status(missing, "ok") is None
    assert sql_storage.set_embedding(missing, "[1.0]", datetime.now(timezone.utc)) is None
    assert (
        sql_storage.update_justification_atomic(
            missing, status="approved", reviewed_by=user.id, reviewed_at=datetime.now(timezone.utc)
        )
        is None
    )


def test_audit_sink_writes_rows(db_session, user):
    SqlAuditSink(SessionLocal).append(user.id, "login", "Login succeeded", ip_address="10.0.0.1")

    entries = db_session.scalars(select(AuditLog)).all()
    assert [(e.user_id, e.action, e.details, e.ip_address) for e in entries] == [
        (user.id, "login", "Login succeeded", "10.0.0.1")
    ]


def test_audit_sink_failures_do_not_propagate(caplog):
    def broken_session():
        raise_on_use = SessionLocal()
        raise_on_use.add = _raise_operational_error
        return raise_on_use

    SqlAuditSink(broken_session).append(None, "login", "details")
    assert "Failed to append audit entry" in caplog.text


def _raise_operational_error(*args, **kwargs):
    raise OperationalError("INSERT INTO audit_logs", {}, Exception("database is locked"))
