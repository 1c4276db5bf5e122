from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CeleryConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CELERY_")

    broker_url: str = "redis://localhost:6379/0"
    queue: str = "push"


class RateLimitConfig(BaseSettings):
    """Per-credential dispatch budget over a sliding window."""

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_")

    dispatches_per_window: int = Field(default=120, ge=1)
    window_seconds: int = Field(default=60, ge=1)
    # Floor for the reschedule delay of a rate-limited job.
    min_retry_after_seconds: int = 5


class WorkerConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PUSH_WORKER_")

    log_level: str = "INFO"
    max_attempts: int = 3
    retry_backoff_seconds: list[int] = [30, 120, 600]
