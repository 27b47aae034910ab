"""Repository contracts and their SQLAlchemy implementations."""

from .interfaces import (
    AppRepository,
    AutomationRepository,
    AutomationRunRepository,
    FieldRepository,
    RecordRepository,
    TypeRepository,
)
from .sql import PlatformStore, build_sql_store

__all__ = [
    "AppRepository",
    "AutomationRepository",
    "AutomationRunRepository",
    "FieldRepository",
    "PlatformStore",
    "RecordRepository",
    "TypeRepository",
    "build_sql_store",
]
