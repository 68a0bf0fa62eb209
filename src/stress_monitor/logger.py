"""Structured logging configuration using *structlog*."""

from __future__ import annotations

import logging
import sys

import structlog

SERVICE_NAME = "stress-monitor"


def _round_floats(_logger, _method, event_dict: dict) -> dict:
    """Keep BPM and HRV values readable in log lines."""
    for key, value in event_dict.items():
        if isinstance(value, float):
            event_dict[key] = round(value, 3)
    return event_dict


def setup_logging(level: str = "INFO", *, service: str = SERVICE_NAME, json: bool | None = None) -> None:
    """Configure *structlog* processors for console or JSON output.

    Call once at application startup.  Every event carries ``service`` so
    lines from the API server and the ``replay`` command can be told apart.
    Interactive terminals get the coloured console renderer unless ``json``
    forces JSON lines.
    """
    if json is None:
        json = not sys.stderr.isatty()
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _round_floats,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
