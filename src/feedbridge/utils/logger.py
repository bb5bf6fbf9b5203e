"""Logging utility for feedbridge.

Uses structlog for structured logging with optional JSON output.

Configuration:
    Environment variables:
    - FEEDBRIDGE_LOG_LEVEL: Global log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - FEEDBRIDGE_JSON_LOGS: Enable JSON output ("1", "true", "yes")

    Or programmatically:
    >>> from feedbridge.utils.logger import configure_logging
    >>> configure_logging(level="DEBUG", json_logs=False)
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Any

import structlog


@dataclass
class LogConfig:
    """Configuration for feedbridge logging."""

    level: str = "WARNING"
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Create LogConfig from environment variables."""

        def parse_bool(val: str | None) -> bool:
            return val is not None and val.lower() in ("1", "true", "yes")

        return cls(
            level=os.getenv("FEEDBRIDGE_LOG_LEVEL", "WARNING"),
            json_logs=parse_bool(os.getenv("FEEDBRIDGE_JSON_LOGS")),
        )


_log_config: LogConfig = LogConfig.from_env()


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Looked up per call, so redirected or replaced stderr streams are honoured
    return structlog.PrintLogger(file=sys.stderr)


def _configure_structlog(config: LogConfig) -> None:
    """Configure structlog processors and the level filter."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.json_logs:
        processors = [
            *shared_processors,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer(colors=False)]

    # Logs go to stderr so that CLI output on stdout stays parseable.
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.level.upper(), logging.WARNING)
        ),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


# Auto-configure on module load
_configure_structlog(_log_config)


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to a module name.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("connector.connected", connector_id="c1", records=42)
    """
    return structlog.get_logger(name)


def get_config() -> LogConfig:
    """Get the current logging configuration."""
    return _log_config


def configure_logging(level: str = "WARNING", json_logs: bool | None = None) -> None:
    """Reconfigure global logging settings."""
    global _log_config

    _log_config = LogConfig(
        level=level,
        json_logs=json_logs if json_logs is not None else _log_config.json_logs,
    )
    _configure_structlog(_log_config)


def bind_context(**kwargs: Any) -> None:
    """Bind key/values to every subsequent log line (e.g. a sync run id)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
