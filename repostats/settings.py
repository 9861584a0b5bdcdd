"""
Centralised application settings loaded from environment variables.
Uses pydantic-settings so every value can be overridden via env vars or a .env file.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration."""

    # ── GitHub ──────────────────────────────────────────────
    github_token: str | None = None
    github_api_base: str = "https://api.github.com"

    # ── HTTP client ─────────────────────────────────────────
    http_connect_timeout: float = 5.0
    http_read_timeout: float = 10.0

    # ── Stats cache ─────────────────────────────────────────
    stats_cache_ttl_seconds: int = 3600
    stats_batch_size: int = 5
    stats_batch_delay_seconds: float = 1.0
    # None = fall back to stale entries no matter how old they are
    stats_max_staleness_seconds: int | None = None
    # None = in-memory store (lost on restart)
    stats_store_dir: str | None = None

    # ── Server ──────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"

    model_config = {"env_prefix": "", "env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton used across the app
settings = Settings()
