"""Shared utilities for the migration engine."""

from .logging import bind_run_context, configure_logging, get_logger

__all__ = ['bind_run_context', 'configure_logging', 'get_logger']
