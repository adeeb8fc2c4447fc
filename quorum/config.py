"""Application configuration from environment variables."""

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION = "0.1.0"


# =============================================================================
# Settings
# =============================================================================


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, description="Bind port")

    # Round schedule (seconds within the minute)
    prepare_offset: int = Field(default=25, description="Second at which sources are polled")
    finalize_offset: int = Field(default=30, description="Second at which the outcome is published")
    tick_interval: float = Field(default=0.8, description="Scheduler wake-up period in seconds")
    fetch_deadline: float = Field(
        default=4.0, description="Upper bound on a single source call during prepare"
    )

    # Source timeouts
    csrng_timeout: float = Field(default=5.0, description="CSRNG call timeout")
    qrng_timeout: float = Field(default=5.0, description="ANU QRNG call timeout")
    random_org_timeout: float = Field(default=8.0, description="random.org call timeout")

    # API Keys
    random_org_api_key: str = Field(default="", description="random.org JSON-RPC API key")

    # State
    state_file: Path | None = Field(
        default=None, description="Where finalized outcomes are persisted"
    )
    history_size: int = Field(default=20, ge=1, description="Finalized rounds kept in memory")

    # Streaming
    stream_heartbeat_interval: float = Field(
        default=15.0, gt=0, description="SSE heartbeat period in seconds"
    )

    @field_validator("state_file", mode="before")
    @classmethod
    def ensure_path(cls, v: str | Path | None) -> Path | None:
        """Convert string to Path."""
        if v is None or v == "":
            return None
        return Path(v) if isinstance(v, str) else v

    @field_validator("prepare_offset", "finalize_offset")
    @classmethod
    def check_offset(cls, v: int) -> int:
        """Offsets are seconds within a minute."""
        if not 0 <= v <= 59:
            raise ValueError(f"offset must be within 0..59, got {v}")
        return v

    @model_validator(mode="after")
    def check_schedule(self) -> "Settings":
        """Every trigger second must be observed at least once per round."""
        gap = self.trigger_gap
        if gap == 0:
            raise ValueError("prepare_offset and finalize_offset must differ")
        if not 0 < self.tick_interval < 1:
            raise ValueError(
                f"tick_interval must be within (0, 1) seconds, got {self.tick_interval}"
            )
        if self.tick_interval >= gap:
            raise ValueError(
                f"tick_interval ({self.tick_interval}s) must be smaller than the "
                f"gap between trigger offsets ({gap}s)"
            )
        if self.fetch_deadline <= 0:
            raise ValueError("fetch_deadline must be positive")
        if self.fetch_deadline + self.tick_interval >= gap:
            raise ValueError(
                f"fetch_deadline ({self.fetch_deadline}s) plus tick_interval must fit "
                f"between prepare and finalize ({gap}s)"
            )
        return self

    @property
    def trigger_gap(self) -> int:
        """Seconds from the prepare trigger to the finalize trigger."""
        return (self.finalize_offset - self.prepare_offset) % 60

    @property
    def has_random_org_key(self) -> bool:
        """Check if a random.org API key is configured."""
        return bool(self.random_org_api_key and self.random_org_api_key != "...")

    def effective_deadline(self, timeout: float) -> float:
        """Clamp a source timeout to the prepare window."""
        return min(timeout, self.fetch_deadline)


# =============================================================================
# Singleton
# =============================================================================


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
