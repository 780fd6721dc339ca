from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    redis_key_prefix: str = "rrp:"

    # Security / policies
    token_hash_rounds: int = 29_000
    recovery_password_ttl_seconds: int = 30 * 24 * 3600

    # Migration
    migration_max_attempts: int = 10
    migration_expiration_seconds: int = 30 * 24 * 3600
    migration_concurrency: int = 16
    migration_batch_size: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
