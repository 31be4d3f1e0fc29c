"""Configuration management for taskdeck."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # PocketBase Configuration
    pocketbase_url: str = Field(default="http://127.0.0.1:8090", description="PocketBase server URL")

    # Web Session Configuration
    secret_key: str | None = Field(default=None, description="Secret key for session and CSRF signing")
    session_max_age_seconds: int = Field(default=86400, description="Lifetime of the signed session cookie")
    environment: str = Field(default="development", description="Deployment environment name")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # HTTP client
    api_timeout_seconds: float = Field(default=30.0, description="Timeout for calls to the backend")

    @property
    def is_production(self) -> bool:
        """Return True when running in the production environment."""
        return self.environment.lower() == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Backend collections
    TASKS_COLLECTION: str = "tasks"
    CATEGORIES_COLLECTION: str = "categories"
    PROFILES_COLLECTION: str = "profiles"
    USERS_COLLECTION: str = "users"

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_NO_CONTENT: int = 204
    HTTP_BAD_REQUEST: int = 400
    HTTP_UNAUTHORIZED: int = 401
    HTTP_FORBIDDEN: int = 403
    HTTP_NOT_FOUND: int = 404

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500  # Page size when listing every record of an owner

    # Display
    NO_CATEGORY_LABEL: str = "No Category"
    COPY_SUFFIX: str = " (Copy)"

    # Cookies
    SESSION_COOKIE: str = "taskdeck_session"
    CSRF_COOKIE: str = "csrf_token"
    CSRF_MAX_AGE_SECONDS: int = 3600
    TZ_OFFSET_COOKIE: str = "tz_offset"
    MAX_TZ_OFFSET_MINUTES: int = 840  # UTC-14:00 to UTC+14:00

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
    TEMPLATES_DIR: Path = PROJECT_ROOT / "templates"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
