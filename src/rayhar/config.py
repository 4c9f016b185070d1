from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RAYHAR_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "rayhar-cache"
    env: str = "dev"

    # Key namespace marker shared by every managed entry. Read once from the
    # environment when rayhar.cache.keys is imported; it is process-wide.
    key_prefix: str = Field(default="rayhar_cache_", validation_alias="RAYHAR_KEY_PREFIX")
    session_id_key: str = Field(
        default="rayhar_session_id", validation_alias="RAYHAR_SESSION_ID_KEY"
    )

    # Default TTLs (milliseconds)
    durable_ttl_ms: int = Field(default=10 * 60 * 1000, validation_alias="RAYHAR_DURABLE_TTL_MS")
    ephemeral_ttl_ms: int = Field(
        default=24 * 60 * 60 * 1000, validation_alias="RAYHAR_EPHEMERAL_TTL_MS"
    )

    # Janitor
    janitor_interval_seconds: float = Field(
        default=300.0, validation_alias="RAYHAR_JANITOR_INTERVAL"
    )
    foreground_debounce_seconds: float = Field(
        default=0.8, validation_alias="RAYHAR_FOREGROUND_DEBOUNCE"
    )

    # Dashboard warming and read-through
    warm_limit: int = Field(default=5, validation_alias="RAYHAR_WARM_LIMIT")
    warm_timeout_seconds: float | None = Field(
        default=None, validation_alias="RAYHAR_WARM_TIMEOUT"
    )
    leaderboard_timeout_seconds: float = Field(
        default=5.0, validation_alias="RAYHAR_LEADERBOARD_TIMEOUT"
    )

    # Storage backends
    durable_backend: Literal["memory", "redis"] = Field(
        default="memory", validation_alias="RAYHAR_DURABLE_BACKEND"
    )
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    # Browsers give localStorage roughly 5MB per origin
    memory_quota_bytes: int = Field(
        default=5 * 1024 * 1024, validation_alias="RAYHAR_MEMORY_QUOTA_BYTES"
    )

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="RAYHAR_ENABLE_METRICS")
    log_level: str = Field(default="INFO", validation_alias="RAYHAR_LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="RAYHAR_LOG_JSON")


settings = Settings()
