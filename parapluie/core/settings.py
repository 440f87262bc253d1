"""Application settings and configuration."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _is_testing() -> bool:
    """Check if we're running in a test environment."""
    import sys
    return "pytest" in sys.modules or any("test" in arg for arg in sys.argv)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env" if not _is_testing() else None,  # Don't load .env in tests
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_env: Literal["local", "staging", "prod", "test"] = Field(
        default="local", description="Application environment"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Metrics
    metrics_enabled: bool = Field(default=True, description="Enable Prometheus metrics")

    # Hosted backend (Supabase)
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_key: str | None = Field(default=None, description="Supabase anon key")

    # Device-local key/value store
    local_store_url: str = Field(
        default="sqlite+aiosqlite:///parapluie_local.db",
        description="SQLAlchemy URL of the local flag store",
    )

    # Deep links / locale
    deep_link_scheme: str = Field(default="parapluie", description="Registered URL scheme")
    default_language: Literal["fr", "en"] = Field(default="fr", description="UI language")
    default_timezone: str = Field(
        default="America/Montreal", description="Timezone stored on new profiles"
    )

    # Profile creation retry
    profile_insert_max_attempts: int = Field(
        default=3, ge=1, description="Profile insert attempts on foreign-key violation"
    )
    profile_retry_delay_sec: float = Field(
        default=1.0, ge=0, description="Backoff between profile insert attempts"
    )
    profile_settle_delay_sec: float = Field(
        default=0.5, ge=0, description="Wait before the first profile insert"
    )

    # Trusted-contact invitations
    invitation_code_length: int = Field(default=4, ge=4, le=6)
    invitation_code_max_attempts: int = Field(
        default=10, ge=1, description="Uniqueness probes per generated code"
    )
    invitation_insert_max_attempts: int = Field(
        default=3, ge=1, description="Inserts retried on a duplicate code"
    )
    invitation_ttl_hours: int = Field(default=24, ge=1, description="Invitation lifetime")

    # Onboarding sessions
    session_idle_ttl_sec: int = Field(
        default=1800, ge=1, description="Idle time after which a session is evicted"
    )

    @model_validator(mode="after")
    def validate_backend_config(self) -> "Settings":
        """Validate hosted backend configuration."""
        if self.app_env in ("staging", "prod") and not (
            self.supabase_url and self.supabase_key
        ):
            raise ValueError(
                "SUPABASE_URL and SUPABASE_KEY are required in staging and prod"
            )
        return self

    @property
    def invitation_ttl(self) -> timedelta:
        return timedelta(hours=self.invitation_ttl_hours)

    @property
    def session_idle_ttl(self) -> timedelta:
        return timedelta(seconds=self.session_idle_ttl_sec)

    @property
    def auth_callback_url(self) -> str:
        return f"{self.deep_link_scheme}://auth/callback"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
