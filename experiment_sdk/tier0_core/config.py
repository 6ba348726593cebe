"""
experiment_sdk.tier0_core.config
─────────────────────────────────
Typed configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic.

Minimal stack: pydantic-settings + python-dotenv
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SDKConfig(BaseSettings):
    """
    Typed SDK configuration.
    All env vars are prefixed with EXPERIMENT_ unless overridden.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ───────────────────────────────────────────────────────────
    app_name: str = Field(default="experiment-sdk", alias="APP_NAME")
    environment: str = Field(default="development", alias="APP_ENV")

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="EXPERIMENT_LOG_LEVEL")
    log_format: str = Field(default="json", alias="EXPERIMENT_LOG_FORMAT")

    # ── Metrics ───────────────────────────────────────────────────────────────
    metrics_enabled: bool = Field(default=True, alias="EXPERIMENT_METRICS_ENABLED")

    # ── User profiles ─────────────────────────────────────────────────────────
    user_profile_backend: str = Field(
        default="none", alias="EXPERIMENT_USER_PROFILE_BACKEND"
    )

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if v.lower() not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got {v!r}")
        return v.lower()

    @field_validator("log_format", "user_profile_backend")
    @classmethod
    def lower(cls, v: str) -> str:
        return v.lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"


@lru_cache(maxsize=1)
def get_config() -> SDKConfig:
    """
    Return the singleton SDK config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    return SDKConfig()


def _reset_config() -> None:
    """For tests — clear the config cache."""
    get_config.cache_clear()


__sdk_export__ = {
    "surface": "both",
    "exports": ["get_config", "SDKConfig"],
    "description": "pydantic-settings configuration for the decision engine",
    "tier": "tier0_core",
    "module": "config",
}
