from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str = "changeme"  # override in .env
    access_token_expire_minutes: int = 60

    # Database
    database_url: str

    # Redis (queue board cache)
    redis_url: str | None = None
    board_cache_ttl_seconds: int = 5

    # Feature flags
    enable_queue: bool = False
    enable_triage: bool = False
    enable_tv_display: bool = False

    # Tenancy
    default_tenant_subdomain: str = "default"
    tenant_base_domain_parts: int = 3

    # Day boundaries for visit/token counters
    facility_timezone: str = "UTC"

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()
