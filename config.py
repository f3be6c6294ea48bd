"""
Centralized application configuration using pydantic-settings.

Handles every environment variable the application reads, typed and
validated in one place.
"""
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Database
    database_url: str = Field(
        default="sqlite:///./repository.db",
        description="SQLAlchemy database URL"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost,http://localhost:3000,http://localhost:8000",
        description="Allowed CORS origins, comma separated"
    )

    # Application
    app_name: str = Field(
        default="Repository API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug_mode: bool = Field(
        default=False,
        description="Debug mode (development only)"
    )

    # Pagination
    default_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Default page size for listings"
    )
    max_page_size: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Largest page size a client may request"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # Timezone
    timezone: str = Field(
        default="UTC",
        description="Timezone used for record timestamps (IANA name)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Fall back to INFO when the configured level is unknown."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(
                f"Log level '{v}' is not valid. Using 'INFO'. "
                f"Valid levels: {valid_levels}"
            )
            return "INFO"
        return v_upper

    @property
    def cors_origins_list(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return not self.debug_mode


settings = Settings()


def configure_logging():
    """Configure application logging."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=log_format,
        handlers=[
            logging.StreamHandler(),
        ]
    )

    # quieter third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger.info(f"Logging configured at level {settings.log_level}")
    logger.info(f"Application: {settings.app_name} v{settings.app_version}")
    logger.info(f"Mode: {'development' if settings.debug_mode else 'production'}")


def get_settings() -> Settings:
    """Return the settings instance (handy for dependency injection)."""
    return settings
