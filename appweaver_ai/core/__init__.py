"""Shared building blocks: logging, errors, background tasks, domain models and persistence."""
