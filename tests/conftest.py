import os

# Settings are read once at import time, so point them at a throwaway database first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["EMBEDDING_CIPHER_KEY"] = "test-embedding-key"
os.environ["BOOTSTRAP_ADMIN_USERNAME"] = "admin"
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = "admin-pass"

import pytest
from fastapi.testclient import TestClient

from ponto.db.base import Base
from ponto.db.session import SessionLocal, engine
from ponto.main import app
from ponto.services.matcher import FaceMatcher

from tests.fakes import InMemoryStorage, RecordingAuditSink
from tests.helpers import ADMIN_CREDENTIALS, login


@pytest.fixture()
def storage():
    return InMemoryStorage()


@pytest.fixture()
def audit():
    return RecordingAuditSink()


@pytest.fixture()
def matcher():
    return FaceMatcher(threshold=0.35)


@pytest.fixture()
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        yield db


@pytest.fixture()
def client():
    Base.metadata.drop_all(bind=engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def admin_headers(client):
    return login(client, **ADMIN_CREDENTIALS)
