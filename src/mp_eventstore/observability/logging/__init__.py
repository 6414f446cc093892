"""Observability – structured logging helpers."""
from mp_eventstore.observability.logging.factory import JsonLoggerFactory
from mp_eventstore.observability.logging.processors import ContextProcessor, get_logger

__all__ = ["ContextProcessor", "JsonLoggerFactory", "get_logger"]
