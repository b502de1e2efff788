from dataclasses import dataclass
from functools import lru_cache

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Agent Provisioning Orchestrator"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True

    # Database
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full

    # Shutdown
    shutdown_grace_period: int = 30

    # Service-to-service auth (billing webhook handler, dashboard backend)
    internal_api_key: str | None = None

    # Workflow runner callbacks (HMAC-SHA256 over the raw body)
    callback_secret: str

    # Provisioning
    heartbeat_interval_seconds: int = 60
    job_timeout_seconds: int = 900
    max_retries: int = 3
    default_region: str = "us-east"
    timeout_sweep_interval_seconds: int = 60

    # Temporal
    temporal_host: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_task_queue: str = "provisioning-jobs"

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    @field_validator("callback_secret")
    @classmethod
    def validate_callback_secret(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError(
                "CALLBACK_SECRET must be at least 32 characters. "
                "Generate one with: openssl rand -hex 32"
            )
        return v

    @field_validator("job_timeout_seconds")
    @classmethod
    def validate_job_timeout(cls, v: int, info: ValidationInfo) -> int:
        """Timeout must leave room for at least one missed heartbeat."""
        interval = info.data.get("heartbeat_interval_seconds", 60)
        if v <= interval:
            raise ValueError(
                f"JOB_TIMEOUT_SECONDS ({v}) must be greater than "
                f"HEARTBEAT_INTERVAL_SECONDS ({interval})"
            )
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("MAX_RETRIES must be >= 0")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()


@dataclass(frozen=True)
class ProvisioningConfig:
    """Provisioning timing and retry policy, passed into the provisioning services."""

    heartbeat_interval_seconds: int = 60
    job_timeout_seconds: int = 900
    max_retries: int = 3
    default_region: str = "us-east"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProvisioningConfig":
        return cls(
            heartbeat_interval_seconds=settings.heartbeat_interval_seconds,
            job_timeout_seconds=settings.job_timeout_seconds,
            max_retries=settings.max_retries,
            default_region=settings.default_region,
        )
