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
        env_prefix="VIDHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(default="change-me", description="Signing secret for bearer token validation.")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Secrets":
        return cls()


class Settings(BaseSettings):
    """Centralised runtime configuration for the Vidhub API."""

    model_config = SettingsConfigDict(
        env_prefix="VIDHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Vidhub API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    storage_root: Path = Field(default_factory=lambda: Path("public"), description="Root for uploads and derived artefacts.")
    storage_backend: Literal["local"] = Field(default="local", description="Active artifact store implementation.")
    uploads_dir: Path | None = Field(default=None, description="Staging directory for uploads (defaults under storage_root).")
    processed_dir: Path | None = Field(default=None, description="Processed renditions (defaults under storage_root).")
    thumbnails_dir: Path | None = Field(default=None, description="Preview images (defaults under storage_root).")

    ffmpeg_binary: str = Field(default="ffmpeg", description="Executable used for derivation jobs.")
    ffprobe_binary: str = Field(default="ffprobe", description="Executable used for duration probing.")
    derivation_timeout_s: Optional[float] = Field(default=None, gt=0, description="Upper bound for the main artifact job.")
    thumbnail_timeout_s: float = Field(default=30.0, gt=0, description="Upper bound for the thumbnail job.")

    max_upload_size_bytes: int = Field(default=100 * 1024 * 1024, description="Hard limit for uploads.")
    supported_extensions: tuple[str, ...] = Field(
        default=(".mp4", ".avi", ".mov", ".mkv", ".webm"),
        description="Upload extensions accepted by the ingest pipeline.",
    )
    default_processing_type: Literal["streaming", "convert"] = "streaming"
    default_quality: Literal["low", "medium", "high"] = "medium"
    default_category: str = "uncategorized"
    featured_limit: int = Field(default=5, ge=1)

    api_prefix: str = Field(default="/api/v1", description="Mount point for the versioned router.")

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def resolved_uploads_dir(self) -> Path:
        return Path(self.uploads_dir or self.storage_root / "uploads")

    @property
    def resolved_processed_dir(self) -> Path:
        return Path(self.processed_dir or self.storage_root / "processed")

    @property
    def resolved_thumbnails_dir(self) -> Path:
        return Path(self.thumbnails_dir or self.storage_root / "thumbnails")

    def streaming_url_for(self, content_id: str) -> str:
        return f"{self.api_prefix}/stream/{content_id}/playlist.m3u8"

    def converted_url_for(self, content_id: str) -> str:
        return f"{self.api_prefix}/videos/{content_id}"

    def thumbnail_url_for(self, content_id: str) -> str:
        return f"{self.api_prefix}/thumbnails/{content_id}.jpg"


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "VIDHUB_ENV": "VIDHUB_ENVIRONMENT",
        "VIDHUB_ROOT": "VIDHUB_STORAGE_ROOT",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()
    secrets = Secrets.from_settings(settings)

    if settings.environment_lower == "production" and secrets.jwt_secret == "change-me":
        raise ValueError("Production environment must have a non-default JWT secret.")

    settings.secrets = secrets
    return settings


__all__ = ["Settings", "Secrets", "get_settings"]
