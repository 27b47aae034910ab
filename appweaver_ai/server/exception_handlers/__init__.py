"""Exception handlers mapping platform errors to HTTP responses."""

from .global_handler import global_exception_handler, not_found_handler, setup_exception_handlers

__all__ = ["global_exception_handler", "not_found_handler", "setup_exception_handlers"]
