"""Runtime settings loaded from the environment."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VIDEOTUBE_",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "VideoTube"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = "sqlite:///./videotube.db"

    # ── Auth ─────────────────────────────────────────────────────────────
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # ── Media ────────────────────────────────────────────────────────────
    media_root: Path = Path("media")
    media_url_path: str = "/media"
    staging_dir: Path = Path("tmp/staging")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
