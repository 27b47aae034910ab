from __future__ import annotations

"""SQLAlchemy ORM models for platform persistence.

These ORM models define the SQL schema used by the repository implementations
in ``appweaver_ai.core.database.repositories.sql``.

Design
------

- Apps own Types and Automations; Types own Fields and Records.
- ``Record.data`` is a JSON document keyed by field id. It is not validated by
  the database; the tool layer checks shape before insert.
- JSON columns use JSONB on PostgreSQL and plain JSON elsewhere (SQLite in
  tests and local development).

Table names are prefixed with ``aw_`` to avoid collisions in shared databases.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonColumn = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class AppRow(Base):
    """Row model for ``aw_apps``."""

    __tablename__ = "aw_apps"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class TypeRow(Base):
    """Row model for ``aw_types``.

    ``position`` is assigned once at creation (count of prior siblings) and is
    never renumbered when a sibling is deleted.
    """

    __tablename__ = "aw_types"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    app_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class FieldRow(Base):
    """Row model for ``aw_fields``."""

    __tablename__ = "aw_fields"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255))
    field_type: Mapped[str] = mapped_column(String(32))
    config: Mapped[Dict[str, Any]] = mapped_column(JsonColumn, default=dict)
    required: Mapped[bool] = mapped_column(Boolean, default=False)
    position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class RecordRow(Base):
    """Row model for ``aw_records``."""

    __tablename__ = "aw_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type_id: Mapped[str] = mapped_column(String(64), index=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JsonColumn, default=dict)
    created_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AutomationRow(Base):
    """Row model for ``aw_automations``."""

    __tablename__ = "aw_automations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    app_id: Mapped[str] = mapped_column(String(64), index=True)
    type_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    trigger: Mapped[str] = mapped_column(String(32))
    code: Mapped[str] = mapped_column(Text)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AutomationRunRow(Base):
    """Row model for ``aw_automation_runs``.

    One row per dispatch attempt. ``logs`` stores the parsed script output as a
    JSON list of ``{timestamp, level, message}`` objects.
    """

    __tablename__ = "aw_automation_runs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    automation_id: Mapped[str] = mapped_column(String(64), index=True)
    status: Mapped[str] = mapped_column(String(16))
    trigger_event: Mapped[str] = mapped_column(String(32))
    trigger_record_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    logs: Mapped[List[Dict[str, Any]]] = mapped_column(JsonColumn, default=list)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
