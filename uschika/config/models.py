"""
Pydantic-based configuration models for the USChika server.

Each group reads its own environment prefix; AppConfig composes them and
also honours a local .env file.
"""

import json
import os
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a string from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


def _default_cors_origins() -> list[str]:
    """Derive default CORS origins, environment first."""
    raw = os.getenv("CORS_ALLOW_ORIGINS") or os.getenv("CLIENT_URL")
    parsed = _parse_env_list(raw) if raw is not None else []
    if parsed:
        return parsed
    return ["http://localhost:5173", "http://127.0.0.1:5173"]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=5000, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class SecurityConfig(BaseSettings):
    """Credential verification settings."""

    jwt_secret: str = Field(..., description="Secret used to verify login tokens (required)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    allowed_email_domain: str | None = Field(
        default="@usc.edu.ph",
        description="Only identities whose e-mail ends with this suffix are accepted; empty disables the check",
    )

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Reject empty or trivially short secrets."""
        if len(v) < 16:
            logger.error("JWT secret validation failed - too short", secret_length=len(v), minimum_length=16)
            raise ValueError("JWT secret must be at least 16 characters")
        return v

    @field_validator("allowed_email_domain")
    @classmethod
    def normalize_domain(cls, v: str | None) -> str | None:
        """Blank disables the domain restriction."""
        if v is None or not v.strip():
            return None
        return v.strip().lower()

    model_config = {"env_prefix": "USCHIKA_", "case_sensitive": False, "extra": "ignore"}


class DatabaseConfig(BaseSettings):
    """Database configuration for the persistence sink."""

    url: str | None = Field(default=None, description="PostgreSQL URL; unset disables persistence")
    pool_size: int = Field(default=5, description="Number of connections to maintain in pool")
    max_overflow: int = Field(default=10, description="Additional connections beyond pool_size")
    pool_timeout: int = Field(default=30, description="Seconds to wait for connection from pool")

    @field_validator("url")
    @classmethod
    def validate_database_url(cls, v: str | None) -> str | None:
        """Validate database URL format - PostgreSQL only."""
        if v is None or not v.strip():
            return None
        if not v.startswith("postgresql"):
            logger.error("Database URL validation failed - invalid protocol", expected_protocol="postgresql")
            raise ValueError("Database URL must start with 'postgresql'")
        return v

    @field_validator("pool_size", "max_overflow", "pool_timeout")
    @classmethod
    def validate_pool_config(cls, v: int) -> int:
        """Validate pool configuration values are positive."""
        if v < 1:
            raise ValueError("Pool configuration values must be at least 1")
        return v

    model_config = {"env_prefix": "DATABASE_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="colored", description="Log format")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="100MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "human", "colored"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Dict shape consumed by setup_enhanced_logging()."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "log_base": self.log_base,
            "rotation": {
                "max_size": self.rotation_max_size,
                "backup_count": self.rotation_backup_count,
            },
            "disable_logging": self.disable_logging,
        }


class ChatConfig(BaseSettings):
    """Chat boundary limits and message retention."""

    max_message_length: int = Field(default=1000, description="Maximum characters per chat message")
    max_frame_bytes: int = Field(default=8 * 1024, description="Maximum inbound WebSocket frame size")
    rate_limit_messages: int = Field(default=30, description="Messages allowed per rate limit window")
    rate_limit_window: int = Field(default=60, description="Rate limit window in seconds")
    message_retention_hours: int = Field(default=24, description="Hours relayed messages are kept")
    purge_interval_seconds: int = Field(default=600, description="Seconds between retention purges")
    max_queued_events: int = Field(default=1000, description="Outbound events buffered per connection")

    @field_validator("max_message_length")
    @classmethod
    def validate_max_message_length(cls, v: int) -> int:
        """Validate message length limit."""
        if not 1 <= v <= 10000:
            raise ValueError("Max message length must be between 1 and 10000")
        return v

    @field_validator(
        "rate_limit_messages",
        "rate_limit_window",
        "message_retention_hours",
        "purge_interval_seconds",
        "max_queued_events",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate value is positive."""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    model_config = {"env_prefix": "CHAT_", "case_sensitive": False, "extra": "ignore"}


class CORSConfig(BaseSettings):
    """Cross-origin resource sharing configuration."""

    allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=_default_cors_origins,
        description="Origins permitted to access the API",
    )
    allow_methods: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["GET", "POST", "OPTIONS"],
        description="HTTP methods permitted by CORS responses",
    )
    allow_headers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["Content-Type", "Authorization"],
        description="Headers permitted by CORS responses",
    )
    max_age: int = Field(default=600, description="Preflight cache duration in seconds")

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> Any:
        """Accept CSV as well as JSON lists from the environment."""
        if isinstance(v, str):
            return _parse_env_list(v)
        return v

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via get_config().
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)  # type: ignore[arg-type]
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Dict form used by the logging bootstrap."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "database_enabled": self.database.url is not None,
            "logging": self.logging.to_legacy_dict(),
        }
