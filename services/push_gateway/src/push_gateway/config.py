from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewayConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PUSH_GATEWAY_")

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    default_page_size: int = 25
    max_page_size: int = 100


class CeleryConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CELERY_")

    broker_url: str = "redis://localhost:6379/0"
    queue: str = "push"
