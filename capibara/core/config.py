"""
Configuration Management

Centralized configuration using Pydantic Settings.
All settings loaded from environment variables with sensible defaults.
"""
import secrets
from pathlib import Path
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Ignore extra environment variables that aren't defined in the model
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ============================================================
    # Runtime
    # ============================================================
    environment: str = Field("production", description="development or production (docs only in development)")

    # ============================================================
    # Storage Configuration
    # ============================================================
    data_root: Path = Field(Path("."), description="Root directory for all persisted files")
    authorized_keys_path: str = Field(
        "Files/authorized_keys",
        description="authorized_keys location, relative to data_root"
    )
    backup_log_path: str = Field(
        "Files/backup.log",
        description="Backup process log location, relative to data_root"
    )

    # ============================================================
    # Authentication
    # ============================================================
    auth_enabled: bool = Field(True, description="Require a session token or API key on gated endpoints")
    api_username: Optional[str] = Field(None, description="Username accepted by /auth/token")
    api_password: Optional[str] = Field(None, description="Password accepted by /auth/token")
    api_key: Optional[str] = Field(None, description="Static API key accepted in X-API-Key (optional)")
    jwt_secret: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="HS256 signing secret (random per process if unset)"
    )
    jwt_expiration_minutes: int = Field(15, description="Session token lifetime in minutes")
    jwt_issuer: str = Field("capibara-api", description="Token issuer claim")
    jwt_audience: str = Field("capibara-clients", description="Token audience claim")

    # ============================================================
    # API Configuration
    # ============================================================
    allowed_origins: str = Field(
        "http://localhost:3000,http://localhost:8000",
        description="Comma-separated CORS allowed origins"
    )
    force_https: bool = Field(False, description="Redirect plain HTTP requests to HTTPS")
    api_port: int = Field(8000, description="API server port")
    rate_limit_per_minute: int = Field(60, description="Requests per minute per client IP")

    # ============================================================
    # Logging Configuration
    # ============================================================
    log_level: str = Field("INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse allowed origins into list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def authorized_keys_file(self) -> Path:
        """Absolute-ish path of the authorized_keys file."""
        return self.data_root / self.authorized_keys_path

    @property
    def backup_log_file(self) -> Path:
        return self.data_root / self.backup_log_path


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings (singleton).

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings():
    """Reload settings from environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings
