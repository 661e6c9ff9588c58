"""Observability utilities for the interview engine."""
from .logger import log_event, reset_handlers
from .tracing import span

__all__ = ["log_event", "reset_handlers", "span"]
