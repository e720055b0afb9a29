"""Structured logging for one_shot."""

from __future__ import annotations

import logging
from typing import Any

import structlog


def get_logger(name: str | None = None) -> Any:
    """Gets a structlog logger, bound to the module name when given."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger_name=name)


def configure_logging(level: int = logging.INFO) -> None:
    """Configures structlog to render events at or above level to the console."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
