"""
Structlog-based logging configuration for the USChika server.

All modules obtain their logger through get_logger() so that key-value
context (connection_id, room_id, ...) is rendered consistently whether the
server logs to the console during development or to JSON files in production.

CORRECT USAGE:
    from ..structured_logging.enhanced_logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Chat matched", room_id=room_id)
"""

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

VALID_ENVIRONMENTS = ["local", "unit_test", "production"]

SENSITIVE_KEYS = [
    "password",
    "token",
    "secret",
    "credential",
    "jwt",
    "authorization",
    "bearer",
]

_LOGGING_INITIALIZED = False
_LOGGING_SIGNATURE: str | None = None


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        Environment name: "unit_test", "local" or "production"
    """
    if "pytest" in sys.modules:
        return "unit_test"

    env = os.getenv("LOGGING_ENVIRONMENT", "")
    if env in VALID_ENVIRONMENTS:
        return env

    return "local"


def _resolve_log_base(log_base: str) -> Path:
    """Resolve log_base relative to the project root (where pyproject.toml lives)."""
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path

    current_dir = Path.cwd()
    for parent in [current_dir] + list(current_dir.parents):
        if (parent / "pyproject.toml").exists():
            return parent / log_path
    return current_dir / log_path


def _parse_max_size(max_size: str | int) -> int:
    """Convert a size such as "10MB" into bytes."""
    if isinstance(max_size, int):
        return max_size
    if max_size.endswith("MB"):
        return int(max_size[:-2]) * 1024 * 1024
    if max_size.endswith("KB"):
        return int(max_size[:-2]) * 1024
    if max_size.endswith("B"):
        return int(max_size[:-1])
    return int(max_size)


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Redact credentials from log entries.

    Login frames carry a bearer token; any key that looks like a credential is
    replaced before rendering so tokens never reach the log files.
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            elif isinstance(key, str) and any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def _setup_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> None:
    """Attach a rotating file handler for the environment's log directory."""
    env_log_dir = _resolve_log_base(log_config.get("log_base", "logs")) / environment
    env_log_dir.mkdir(parents=True, exist_ok=True)

    rotation = log_config.get("rotation", {})
    handler = RotatingFileHandler(
        env_log_dir / "server.log",
        maxBytes=_parse_max_size(rotation.get("max_size", "10MB")),
        backupCount=rotation.get("backup_count", 5),
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)


def configure_enhanced_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure structlog on top of the standard library logging module.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary (see LoggingConfig.to_legacy_dict)
    """
    if environment is None:
        environment = detect_environment()
    log_config = log_config or {}

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
    if not any(isinstance(h, logging.StreamHandler) for h in root_logger.handlers):
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(stream_handler)

    if not log_config.get("disable_logging", False) and environment != "unit_test":
        _setup_file_logging(environment, log_config, log_level)

    renderer: Any
    log_format = log_config.get("format", "colored")
    if log_format == "json" or environment == "production":
        renderer = structlog.processors.JSONRenderer()
    elif log_format == "human":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            sanitize_sensitive_data,
            merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the root handlers."""
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def setup_enhanced_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging once per process.

    Args:
        config: Server configuration dictionary (AppConfig.to_legacy_dict())
        force_reconfigure: Reconfigure even when logging is already initialized
    """
    global _LOGGING_INITIALIZED, _LOGGING_SIGNATURE

    config_signature = json.dumps(config, sort_keys=True, default=str)
    if _LOGGING_INITIALIZED and not force_reconfigure:
        get_logger("uschika.structured_logging").debug(
            "setup_enhanced_logging skipped; logging system already initialized",
            config_signature=_LOGGING_SIGNATURE,
        )
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment", detect_environment())
    log_level = logging_config.get("level", "INFO")

    configure_enhanced_structlog(environment, log_level, logging_config)
    _configure_uvicorn_logging()

    get_logger("uschika.structured_logging").info(
        "Logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
        started_at=datetime.now(UTC).isoformat(),
    )

    _LOGGING_INITIALIZED = True
    _LOGGING_SIGNATURE = config_signature


def bind_connection_context(connection_id: str, **kwargs: Any) -> None:
    """Bind a connection id (and extra keys) to every log line in the current task."""
    context_vars = {"connection_id": connection_id, **kwargs}
    bind_contextvars(**{k: v for k, v in context_vars.items() if v is not None})


def clear_connection_context() -> None:
    """Clear the context bound by bind_connection_context()."""
    clear_contextvars()


def get_logger(name: str) -> BoundLogger:
    """
    Get a structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)
