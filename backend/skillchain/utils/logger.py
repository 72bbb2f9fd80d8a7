"""
Structured logging: timestamp, level, event and key-value context.

JSON output by default (LOG_FORMAT=json); human-readable console output for
local work (LOG_FORMAT=console). Modules call get_logger(__name__) and log a
snake_case event name with keyword context:

    logger = get_logger(__name__)
    logger.info("payment_verified", signature=sig, amount=lamports)
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

from skillchain.config import get_settings


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog processors and output once per process."""
    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL).upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or settings.LOG_FORMAT).strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structured logger bound to the given module name."""
    return structlog.get_logger(name).bind(logger=name)


def short(value: str | None, keep: int = 12) -> str | None:
    """Trim long base58 strings (signatures, wallets) for log lines."""
    if value is None or len(value) <= keep:
        return value
    return value[:keep] + "..."
