"""Configuration settings for GitHub Throttle."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExecutorConfig(BaseModel):
    """Configuration for the rate-limited request executor.

    Controls the retry budget and the caps applied to every wait.
    """

    max_retries: int = Field(
        default=5,
        ge=0,
        description="Retries allowed for server-signaled rate limits per call",
    )

    # Wait caps
    max_wait_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Per-wait cap applied before jitter (admission and header waits)",
    )
    max_backoff_seconds: float = Field(
        default=300.0,
        gt=0.0,
        description=(
            "Absolute cap on a single post-failure wait (after jitter); only binds "
            "when max_wait_seconds is raised above it"
        ),
    )

    # Exponential fallback when the server gives no hint
    fallback_base_seconds: float = Field(
        default=2.0,
        gt=0.0,
        description="Base of the exponential fallback: 2^attempt * base",
    )
    fallback_cap_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Cap on the exponential fallback wait",
    )

    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-request network timeout for the HTTP transport",
    )


class RateLimitConfig(BaseModel):
    """Configuration for rate limit monitoring and admission.

    Controls thresholds for health status determination and
    the failure backoff applied by the default rate limiter.
    """

    # Threshold percentages for status determination
    healthy_threshold_pct: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is HEALTHY",
    )
    warning_threshold_pct: float = Field(
        default=20.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is WARNING (below healthy)",
    )
    critical_threshold_pct: float = Field(
        default=5.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is CRITICAL (below warning)",
    )

    # Safety margins
    min_remaining_buffer: int = Field(
        default=0,
        ge=0,
        description="Deny admission when tracked remaining quota is at or below this",
    )

    # Failure backoff
    backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Multiplier applied per consecutive failure",
    )
    base_failure_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Backoff after the first recorded failure",
    )
    max_failure_backoff_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Upper bound on the failure backoff",
    )

    # Behavior
    track_from_headers: bool = Field(
        default=True,
        description="Passively track limits from response headers",
    )


class PacingConfig(BaseModel):
    """Configuration for request pacing.

    Controls the steady-state target rate and the adaptive delay bounds.
    """

    target_rate: float = Field(
        default=25.0,
        gt=0.0,
        description="Target steady-state requests per second per credential",
    )

    # Timing bounds
    min_request_interval_ms: int = Field(
        default=0,
        ge=0,
        description="Minimum milliseconds between requests",
    )
    max_request_interval_ms: int = Field(
        default=60000,
        ge=100,
        description="Maximum milliseconds between requests (60 seconds)",
    )

    # Safety margins
    reserve_buffer_pct: float = Field(
        default=10.0,
        ge=0.0,
        le=50.0,
        description="Percentage of quota to reserve as buffer",
    )
    burst_allowance: int = Field(
        default=10,
        ge=0,
        description="Number of requests allowed in short bursts",
    )

    @property
    def target_interval(self) -> float:
        """Seconds between slots at the target rate."""
        return 1.0 / self.target_rate


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="GitHub personal access token",
    )
    github_base_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
    )
    github_api_version: str = Field(
        default="2022-11-28",
        description="Value sent in the X-GitHub-Api-Version header",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Execution, Rate Limiting & Pacing
    # --------------------------------------------------------------------------
    executor: ExecutorConfig = Field(
        default_factory=ExecutorConfig,
        description="Retry and wait configuration for the executor",
    )
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Rate limit monitoring configuration",
    )
    pacing: PacingConfig = Field(
        default_factory=PacingConfig,
        description="Request pacing configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
