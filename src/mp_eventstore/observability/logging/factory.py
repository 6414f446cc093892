"""Observability – JsonLoggerFactory."""
from __future__ import annotations

import logging
from typing import IO, Any

import structlog

from mp_eventstore.observability.logging.processors import ContextProcessor


class JsonLoggerFactory:
    """Configure structlog for JSON output through the stdlib root handler."""

    @staticmethod
    def configure(level: int = logging.INFO, stream: IO[str] | None = None) -> None:
        """Render every record as one JSON line on *stream* (stderr by default)."""
        shared_processors: list[Any] = [
            structlog.contextvars.merge_contextvars,
            ContextProcessor(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
        ]

        structlog.configure(
            processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        formatter = structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
        )
        handler = logging.StreamHandler(stream)
        handler.setFormatter(formatter)
        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(level)


__all__ = ["JsonLoggerFactory"]
