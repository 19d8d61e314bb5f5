"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


# HS256 keys shorter than this are brute-forceable offline.
MIN_PRODUCTION_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every field maps to an environment variable of the same name
    (case-insensitive), optionally loaded from a ``.env`` file.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./dashgate.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(
        default=5,
        description="Number of persistent database connections"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed during traffic bursts"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection from the pool before raising"
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Seconds before a connection is recycled (prevents stale connections)"
    )

    # Authentication
    # JWT_SECRET_KEY has no default: startup is blocked until one is provided.
    jwt_secret_key: str = Field(
        default="",
        description="JWT signing secret (required)"
    )
    jwt_algorithm: str = Field(default="HS256")
    token_expiry_minutes: int = Field(
        default=60,
        description="Lifetime of session tokens issued at login"
    )
    password_hash_rounds: int = Field(
        default=10,
        description="bcrypt cost factor for password hashes"
    )
    password_reset_expiry_minutes: int = Field(
        default=60,
        description="Lifetime of password-reset tokens"
    )

    # Access model
    # When False, an area grant is enough to read every dashboard in the area.
    dashboard_granular_access: bool = Field(
        default=True,
        description="Require a dashboard-level grant in addition to the area grant"
    )

    # Audit Log
    audit_enabled: bool = Field(
        default=True,
        description="Record audit log entries (False turns the recorder into a no-op)"
    )
    audit_max_payload_bytes: int = Field(
        default=50_000,
        description="Serialized details larger than this are replaced by a summary"
    )
    audit_retention_days: int = Field(
        default=365,
        description="Days to keep audit log entries, purged at startup (0 = keep forever)"
    )
    audit_min_cleanup_days: int = Field(
        default=7,
        description="Manual cleanup may never delete entries younger than this"
    )
    audit_export_limit: int = Field(
        default=10_000,
        description="Maximum rows written by the CSV export"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        # SECURITY: Prevent wildcard CORS
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('password_hash_rounds')
    @classmethod
    def validate_hash_rounds(cls, v: int) -> int:
        # bcrypt accepts 4..31
        if not 4 <= v <= 31:
            raise ValueError("PASSWORD_HASH_ROUNDS must be between 4 and 31")
        return v

    def validate_startup_config(self) -> None:
        """Validate configuration before the API starts serving.

        A missing signing secret always blocks startup. In production, weak
        secrets and localhost CORS origins block startup too.

        Raises:
            ConfigurationError: If the configuration is unusable.
        """
        if not self.jwt_secret_key:
            raise ConfigurationError(
                "JWT_SECRET_KEY is not set. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if self.environment != Environment.PRODUCTION:
            return

        errors: list[str] = []

        if len(self.jwt_secret_key) < MIN_PRODUCTION_SECRET_LENGTH:
            errors.append(
                f"JWT_SECRET_KEY must be at least {MIN_PRODUCTION_SECRET_LENGTH} characters in production."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
            )

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
