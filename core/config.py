"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-based configuration. Validated at startup."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    APP_NAME: str = Field(default="apicontroller", description="Service name for logs and docs")
    DEBUG: bool = Field(default=False, description="Expose /docs and /openapi.json")

    HOST: str = Field(default="0.0.0.0", description="Bind address; 0.0.0.0 for containers")
    PORT: int = Field(default=8000, ge=0, le=65535)

    SHUTDOWN_GRACE_SECONDS: float = Field(
        default=5.0, gt=0, description="In-flight requests get this long to finish on stop"
    )
    AUTH_FAILURE_STATUS: int = Field(
        default=500, ge=400, le=599, description="Status sent when the token verifier fails"
    )

    JWT_SECRET_KEY: str | None = Field(default=None, description="Enables the JWT verifier in main.py")
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_ACCESS_EXPIRE_MINUTES: int = Field(default=30, ge=1)

    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=False, description="JSON logs for cloud aggregators")

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_secret(cls, v: str | None) -> str | None:
        if v is not None and len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance. Avoids re-reading env for every controller."""
    return Settings()
