"""Application settings parsed from environment variables and defaults."""

import json
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FORBIDDEN_PATTERNS = [
    r"\b(hate|kill|die|murder)\b",
    r"\b(drugs|cocaine|heroin|meth)\b",
]
MAX_DELETE_BATCH_SIZE = 500


def _split_list(value: str | list[str] | None) -> list[str] | None:
    """Normalize list settings from JSON, CSV, or list inputs; None when empty."""
    if isinstance(value, list):
        cleaned = [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return cleaned or None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            cleaned = [str(item).strip() for item in parsed if str(item).strip()]
            return cleaned or None
        return [item.strip() for item in stripped.split(",") if item.strip()] or None
    return None


class Settings(BaseSettings):
    """Sweep, scheduler, and moderation configuration loaded from the environment."""

    app_name: str = "snapkeeper"
    environment: str = "development"

    database_url: str = "sqlite+aiosqlite:///./snapkeeper.db"
    test_database_url: Optional[str] = None

    log_level: str = "INFO"
    redis_url: str = "redis://redis:6379/0"
    worker_queue_names: list[str] | str = Field(default_factory=lambda: ["default", "maintenance"])

    sweep_timezone: str = "America/Los_Angeles"
    story_sweep_interval_seconds: int = 60 * 60
    direct_sweep_interval_seconds: int = 6 * 60 * 60
    delete_batch_size: int = MAX_DELETE_BATCH_SIZE

    storage_bucket: Optional[str] = None
    blob_path_marker: str = "/o/"
    blob_query_delimiter: str = "?"

    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    moderation_model: Optional[str] = None
    vision_model: str = "gpt-4o-mini"
    vision_max_tokens: int = 100
    moderation_timeout_seconds: float = 15.0
    # Comma-separated values are ambiguous for regexes, so only JSON arrays or lists are accepted.
    forbidden_patterns: list[str] = Field(default_factory=lambda: DEFAULT_FORBIDDEN_PATTERNS.copy())

    @field_validator("worker_queue_names", mode="before")
    @classmethod
    def _split_worker_queue_names(cls, value: str | list[str] | None) -> list[str]:
        """Normalize worker queue names from JSON, CSV, or list inputs."""
        return _split_list(value) or ["default"]

    @field_validator("delete_batch_size")
    @classmethod
    def _bound_batch_size(cls, value: int) -> int:
        """Keep delete batches within the store's atomic operation cap."""
        if value < 1 or value > MAX_DELETE_BATCH_SIZE:
            raise ValueError(f"DELETE_BATCH_SIZE must be between 1 and {MAX_DELETE_BATCH_SIZE}")
        return value

    @model_validator(mode="after")
    def _validate_timezone(self) -> "Settings":
        """Reject schedule timezones the zoneinfo database does not know."""
        try:
            ZoneInfo(self.sweep_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown SWEEP_TIMEZONE {self.sweep_timezone!r}") from exc
        return self

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings to avoid re-parsing environment variables."""
    return Settings()


settings = get_settings()
