"""
Centralized configuration for the Tenantgate backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings are namespaced by prefix (e.g., SESSION_*, LOCKOUT_*, SUPABASE_*).
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Tenantgate API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Persistence
    store_backend: str = "memory"  # "memory" or "supabase"
    store_timeout_seconds: float = 5.0
    store_retry_attempts: int = 3
    store_retry_backoff_ms: int = 100

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""

    # Sessions
    session_ttl_seconds: int = 24 * 60 * 60
    session_token_bytes: int = 32
    session_cache_ttl_seconds: int = 60  # 0 disables the in-process cache
    session_cache_max_entries: int = 10_000
    auth_timeout_seconds: float = 10.0

    # Brute-force lockout
    lockout_max_attempts: int = 5
    lockout_window_seconds: int = 15 * 60

    # Subscriptions
    grace_period_days: int = 7
    trial_period_days: int = 14
    billing_webhook_secret: str = ""

    # Entitlements
    feature_gates_path: Optional[str] = None
    read_only_features: list[str] = ["data-read", "data-export"]

    # Background maintenance (session GC, grace-period sweep)
    maintenance_interval_seconds: int = 300


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
