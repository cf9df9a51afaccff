"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_LOCAL_STORE_BACKENDS = ("file", "redis")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Shiftwise"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Cloud database
    DATABASE_URL: str
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5

    # Guest-mode key-value store
    LOCAL_STORE_BACKEND: str = "file"  # file, redis
    LOCAL_STORE_DIR: str = ".shiftwise-local"
    LOCAL_STORE_NAMESPACE: str = "shiftwise"  # Redis key prefix
    REDIS_URL: str = "redis://localhost:6379/0"

    # Username given to cloud user rows created during migration
    GUEST_USERNAME_PREFIX: str = "user_"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:8081", "http://localhost:19006"]

    # Monitoring
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # 'text' or 'json' (json for production)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("LOCAL_STORE_BACKEND")
    @classmethod
    def validate_local_store_backend(cls, v: str) -> str:
        """Reject unknown local store backends at startup."""
        backend = v.strip().lower()
        if backend not in SUPPORTED_LOCAL_STORE_BACKENDS:
            raise ValueError(
                f"LOCAL_STORE_BACKEND must be one of {', '.join(SUPPORTED_LOCAL_STORE_BACKENDS)}, "
                f"got {v!r}"
            )
        return backend

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """SQLite is for tests and local development only."""
        import os

        environment = os.getenv("ENVIRONMENT", "development")

        if environment == "production" and v.startswith("sqlite"):
            raise ValueError("DATABASE_URL must point at PostgreSQL in production")

        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
