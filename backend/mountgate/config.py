"""mountgate configuration — Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "mountgate"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Network
    host: str = "127.0.0.1"
    port: int = 8000
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Auth: bearer JWT issued by the upstream account service
    secret_key: str = "change-me-in-prod"
    token_algorithm: str = "HS256"

    # Storage
    database_path: str = "./data/mountgate.db"
    max_db_connections: int = 5

    # SSH / SFTP
    ssh_connect_timeout: float = 10.0
    ssh_known_hosts: str = ""  # empty = host keys are not verified
    operation_timeout: float = 120.0  # seconds per file operation
    upload_chunk_size: int = 64 * 1024

    # Mount listing
    default_page_size: int = 10

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="MOUNTGATE_",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        if isinstance(value, list):
            return value
        return ["http://localhost:5173"]

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Make a relative database path absolute (``:memory:`` is kept)."""
        base = Path(__file__).resolve().parent.parent  # backend/
        if self.database_path != ":memory:" and not Path(self.database_path).is_absolute():
            self.database_path = str(base / self.database_path)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
