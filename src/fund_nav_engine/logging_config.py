"""Structured logging configuration using structlog.

Development runs get colored console output; production runs emit one JSON
object per event. Money and identifiers are rendered as exact strings, so a
NAV of 9500000.00 is logged as "9500000.00" rather than a float.
Request-scoped values (request ids, redemption ids) are bound through
structlog's contextvars integration.
"""

import logging
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

import structlog
from structlog.types import Processor

from fund_nav_engine.config import Settings, get_settings

# Loggers that flood DEBUG output with transport chatter.
NOISY_LOGGERS = ("httpcore", "httpx", "uvicorn.access", "asyncio")


def _add_log_level(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add log level to event dict for JSON output."""
    if method_name == "warn":
        method_name = "warning"
    event_dict["level"] = method_name.upper()
    return event_dict


def _add_app_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Stamp every event with the engine name and environment."""
    settings = get_settings()
    event_dict["app"] = settings.app_name
    event_dict["environment"] = settings.environment.value
    return event_dict


def _stringify_exact_values(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Render Decimal and UUID values as strings.

    The JSON renderer would otherwise fall back to repr() for both.
    """
    for key, value in event_dict.items():
        if isinstance(value, (Decimal, UUID)):
            event_dict[key] = str(value)
    return event_dict


def get_console_processors() -> list[Processor]:
    """Get processors for console (development) output."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _stringify_exact_values,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        ),
    ]


def get_json_processors() -> list[Processor]:
    """Get processors for JSON (production) output."""
    return [
        structlog.contextvars.merge_contextvars,
        _add_log_level,
        _add_app_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _stringify_exact_values,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structured logging based on settings.

    Args:
        settings: Engine settings. If None, loads from the FNE_ environment.

    Call this once at startup (API lifespan or CLI entry point) before any
    logging occurs.
    """
    if settings is None:
        settings = get_settings()

    log_level = getattr(logging, settings.log_level.value)

    if settings.log_format == "json":
        processors = get_json_processors()
    else:
        processors = get_console_processors()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if settings.log_file:
        _setup_file_handler(settings.log_file, log_level)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(log_level, logging.INFO))


def _setup_file_handler(log_file: Path, level: int) -> None:
    """Attach a plain-text file handler to the root logger.

    Args:
        log_file: Destination file; missing parent directories are created.
        level: Minimum level written to the file.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logging.getLogger().addHandler(file_handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, normally the calling module's __name__.

    Returns:
        Configured structlog BoundLogger.

    Example:
        logger = get_logger(__name__)
        logger.info("nav_approved", nav_id=str(nav.id), nav_per_share="9.5000")
    """
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables for all subsequent log calls in this context.

    Args:
        **kwargs: Key-value pairs to bind, e.g. request_id or actor_id.

    Example:
        bind_context(request_id="abc123", actor_id=str(actor_id))
        logger.info("nav_submitted")  # includes request_id and actor_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove context variables from the logging context.

    Args:
        *keys: Keys to remove from the context.
    """
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all context variables from the logging context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for temporary log context binding.

    Only the keys bound on entry are removed on exit; values bound by an
    enclosing request survive.

    Example:
        with LogContext(redemption_id=str(request.id)):
            logger.info("processing_redemption")
            ...
            logger.info("redemption_processed")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs

    def __enter__(self) -> "LogContext":
        bind_context(**self.kwargs)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self.kwargs.keys())
