from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select

from ponto.api.errors import register_error_handlers
from ponto.api.routes import admin, auth, health, justifications, punches, users
from ponto.core.config import get_settings
from ponto.core.logging import configure_logging
from ponto.core.security import hash_password
from ponto.db.base import Base
from ponto.db.models import User
from ponto.db.session import SessionLocal, engine

settings = get_settings()
configure_logging(settings.log_level, settings.log_dir or None, json_format=settings.log_json)
logger = logging.getLogger("ponto.main")


def bootstrap_defaults() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        admin_user = db.scalar(select(User).where(User.username == settings.bootstrap_admin_username))
        if admin_user is None:
            admin_user = User(
                username=settings.bootstrap_admin_username,
                password_hash=hash_password(settings.bootstrap_admin_password),
                name=settings.bootstrap_admin_name,
                email=settings.bootstrap_admin_email,
                role="admin",
                is_active=True,
            )
            db.add(admin_user)
            db.commit()
            logger.info("Created bootstrap admin user '%s'.", settings.bootstrap_admin_username)


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap_defaults()
    yield


app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(users.router, prefix=settings.api_prefix)
app.include_router(punches.router, prefix=settings.api_prefix)
app.include_router(justifications.router, prefix=settings.api_prefix)
app.include_router(admin.router, prefix=settings.api_prefix)
