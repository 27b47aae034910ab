"""SQL persistence for Apps, Types, Fields, Records and Automations."""

from .entities import Base
from .repositories import PlatformStore, build_sql_store
from .utils import create_all, create_engine, create_sessionmaker

__all__ = [
    "Base",
    "PlatformStore",
    "build_sql_store",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
