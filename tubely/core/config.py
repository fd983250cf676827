from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="TUBELY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for bearer token validation.")
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Secrets":
        return cls()


class Settings(BaseSettings):
    """Centralised runtime configuration for the Tubely API."""

    model_config = SettingsConfigDict(
        env_prefix="TUBELY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Tubely API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    port: int = Field(default=8091, description="Port the API is served on.")
    public_base_url: Optional[str] = Field(
        default=None,
        description="Externally visible base URL (defaults to http://localhost:<port>).",
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./tubely.db",
        description="SQLAlchemy compatible DSN.",
    )

    assets_root: Path = Field(default_factory=lambda: Path("assets"), description="Root for thumbnail files.")
    tmp_dir: Optional[Path] = Field(default=None, description="Staging directory for uploads (system default if unset).")

    storage_backend: Literal["local", "s3"] = Field(default="local", description="Active video storage implementation.")
    local_storage_base_path: Path | None = Field(
        default=None,
        description="Override base path for local video storage (defaults to assets_root/videos).",
    )
    s3_bucket: Optional[str] = None
    s3_region: str = Field(default="us-east-1")
    s3_endpoint_url: Optional[str] = Field(default=None, description="Custom endpoint for S3-compatible stores.")
    video_base_url: Optional[str] = Field(
        default=None,
        description="Public base for video URLs, e.g. a CDN distribution. Keys are appended as '<base>/<key>'.",
    )

    max_thumbnail_bytes: int = Field(default=10 * 1024 * 1024, description="Upper bound for thumbnail uploads.")
    max_video_bytes: int = Field(default=1024 * 1024 * 1024, description="Upper bound for video uploads.")

    faststart_enabled: bool = Field(default=True, description="Relocate the moov atom before uploading videos.")
    ffprobe_timeout_s: float = Field(default=30.0)
    ffmpeg_timeout_s: float = Field(default=300.0)
    s3_connect_timeout_s: float = Field(default=5.0)
    s3_read_timeout_s: float = Field(default=60.0)

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def resolved_public_base_url(self) -> str:
        base = self.public_base_url or f"http://localhost:{self.port}"
        return base.rstrip("/")

    @property
    def video_storage_path(self) -> Path:
        return self.local_storage_base_path or (self.assets_root / "videos")


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "TUBELY_ENV": "TUBELY_ENVIRONMENT",
        "TUBELY_DB_URL": "TUBELY_DATABASE_URL",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()

    secrets = Secrets.from_settings(settings)

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")
    if settings.storage_backend == "s3" and not settings.s3_bucket:
        raise ValueError("The s3 storage backend requires TUBELY_S3_BUCKET.")

    settings.secrets = secrets
    return settings


__all__ = ["Settings", "Secrets", "get_settings"]
