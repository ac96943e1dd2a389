"""Configuration management for the application."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(default="sqlite:///./catalog.db")

    # Category API client
    api_base_url: str = Field(default="http://localhost:8000")
    api_prefix: str = Field(default="/api/v1")
    request_timeout: float = Field(default=10.0)

    # Quiet period before an async field validation hits the server
    validation_debounce_ms: int = Field(default=300)

    # API
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production has secure settings."""
        if self.environment == "production":
            if "localhost" in self.database_url or self.database_url.startswith("sqlite"):
                raise ValueError("DATABASE_URL should point to a real server in production")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def validation_debounce_seconds(self) -> float:
        return self.validation_debounce_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
