"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file).

    Every field can be overridden with a ``CONTEXT_COLLECTOR_`` prefixed
    environment variable, e.g. ``CONTEXT_COLLECTOR_CACHE_TTL_SECONDS=60``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTEXT_COLLECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 1000
    cache_sweep_interval_seconds: float = 300.0
    read_concurrency: int = 32
    token_counter: Literal["heuristic", "tiktoken"] = "heuristic"
    token_encoding: str = "cl100k_base"
    additional_ignore_patterns: list[str] = []
    host: str = "127.0.0.1"
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
