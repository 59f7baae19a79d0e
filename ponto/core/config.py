from __future__ import annotations

import secrets
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Ponto Time Clock"
    app_env: str = "development"
    api_prefix: str = "/api"
    log_level: str = "INFO"
    log_dir: str = ""
    log_json: bool = False

    database_url: str = "sqlite:///./ponto.db"

    jwt_secret: str = Field(default_factory=lambda: secrets.token_urlsafe(48))
    jwt_algorithm: str = "HS256"
    access_token_minutes: int = 60 * 24 * 7

    bootstrap_admin_username: str = "admin"
    bootstrap_admin_password: str = "ChangeMe123!"
    bootstrap_admin_name: str = "Administrator"
    bootstrap_admin_email: str = "admin@example.com"

    embedding_cipher_key: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    face_match_threshold: float = 0.35
    max_gps_accuracy_m: float = 100.0
    max_reason_length: int = 500

    cors_origins_raw: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
