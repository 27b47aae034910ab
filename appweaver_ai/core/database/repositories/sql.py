from __future__ import annotations

"""SQLAlchemy async repository implementations.

This module provides the SQL-backed persistence implementation for the
repository interfaces defined in
``appweaver_ai.core.database.repositories.interfaces``.

Usage
-----

Typical wiring (tests or application setup):

- Create an async engine with ``create_engine``.
- Create tables with ``create_all``.
- Create a session factory with ``create_sessionmaker``.
- Build the repository bundle with ``build_sql_store``.

Transaction model
-----------------

Each repository method opens an ``AsyncSession``, performs its operation, and
commits. A mutation is therefore durable when the method returns, which is
what the tool layer relies on before publishing a record event.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...models.domain import (
    App,
    Automation,
    AutomationRun,
    AutomationRunStatus,
    AutomationTrigger,
    EntityField,
    EntityType,
    FieldType,
    Record,
    RunLogEntry,
)
from ..entities import (
    AppRow,
    AutomationRow,
    AutomationRunRow,
    FieldRow,
    RecordRow,
    TypeRow,
)
from .interfaces import (
    AppRepository,
    AutomationRepository,
    AutomationRunRepository,
    FieldRepository,
    RecordRepository,
    TypeRepository,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _apply_changes(row: Any, changes: Mapping[str, Any], columns: Mapping[str, str]) -> None:
    """Copy whitelisted ``changes`` onto ``row``; ``columns`` maps domain names to column attributes."""
    for key, value in changes.items():
        column = columns.get(key)
        if column is None:
            raise ValueError(f"Unsupported change: {key}")
        setattr(row, column, _enum_value(value))
    if hasattr(row, "updated_at"):
        row.updated_at = _utc_now()


def _to_app(row: AppRow) -> App:
    return App(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_type(row: TypeRow) -> EntityType:
    return EntityType(
        id=row.id,
        app_id=row.app_id,
        name=row.name,
        description=row.description,
        icon=row.icon,
        position=row.position,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_field(row: FieldRow) -> EntityField:
    return EntityField(
        id=row.id,
        type_id=row.type_id,
        name=row.name,
        type=FieldType(row.field_type),
        config=dict(row.config or {}),
        required=row.required,
        position=row.position,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_record(row: RecordRow) -> Record:
    return Record(
        id=row.id,
        type_id=row.type_id,
        data=dict(row.data or {}),
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_automation(row: AutomationRow) -> Automation:
    return Automation(
        id=row.id,
        app_id=row.app_id,
        type_id=row.type_id,
        name=row.name,
        description=row.description,
        trigger=AutomationTrigger(row.trigger),
        code=row.code,
        enabled=row.enabled,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_run(row: AutomationRunRow) -> AutomationRun:
    return AutomationRun(
        id=row.id,
        automation_id=row.automation_id,
        status=AutomationRunStatus(row.status),
        trigger_event=row.trigger_event,
        trigger_record_id=row.trigger_record_id,
        logs=[RunLogEntry.model_validate(entry) for entry in (row.logs or [])],
        error=row.error,
        duration_ms=row.duration_ms,
        created_at=row.created_at,
    )


@dataclass(frozen=True)
class SqlAppRepository(AppRepository):
    """SQL implementation of ``AppRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, app: App) -> App:
        async with self.session_factory() as s:
            s.add(
                AppRow(
                    id=app.id,
                    user_id=app.user_id,
                    name=app.name,
                    description=app.description,
                    created_at=app.created_at,
                    updated_at=app.updated_at,
                )
            )
            await s.commit()
        return app

    async def get(self, app_id: str) -> Optional[App]:
        async with self.session_factory() as s:
            row = await s.get(AppRow, app_id)
            return _to_app(row) if row is not None else None

    async def get_for_user(self, app_id: str, user_id: str) -> Optional[App]:
        async with self.session_factory() as s:
            stmt = select(AppRow).where(AppRow.id == app_id, AppRow.user_id == user_id)
            row = (await s.execute(stmt)).scalar_one_or_none()
            return _to_app(row) if row is not None else None


@dataclass(frozen=True)
class SqlTypeRepository(TypeRepository):
    """SQL implementation of ``TypeRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    _COLUMNS = {"name": "name", "description": "description", "icon": "icon"}

    async def create(self, entity_type: EntityType) -> EntityType:
        async with self.session_factory() as s:
            s.add(
                TypeRow(
                    id=entity_type.id,
                    app_id=entity_type.app_id,
                    name=entity_type.name,
                    description=entity_type.description,
                    icon=entity_type.icon,
                    position=entity_type.position,
                    created_at=entity_type.created_at,
                    updated_at=entity_type.updated_at,
                )
            )
            await s.commit()
        return entity_type

    async def _get_row(self, s: AsyncSession, type_id: str, app_id: str) -> Optional[TypeRow]:
        stmt = select(TypeRow).where(TypeRow.id == type_id, TypeRow.app_id == app_id)
        return (await s.execute(stmt)).scalar_one_or_none()

    async def get(self, type_id: str, *, app_id: str) -> Optional[EntityType]:
        async with self.session_factory() as s:
            row = await self._get_row(s, type_id, app_id)
            return _to_type(row) if row is not None else None

    async def list(self, app_id: str) -> List[EntityType]:
        async with self.session_factory() as s:
            stmt = select(TypeRow).where(TypeRow.app_id == app_id).order_by(TypeRow.position, TypeRow.created_at)
            rows = (await s.execute(stmt)).scalars().all()
            return [_to_type(r) for r in rows]

    async def count(self, app_id: str) -> int:
        async with self.session_factory() as s:
            stmt = select(func.count()).select_from(TypeRow).where(TypeRow.app_id == app_id)
            return int(await s.scalar(stmt) or 0)

    async def update(self, type_id: str, *, app_id: str, changes: Mapping[str, Any]) -> Optional[EntityType]:
        async with self.session_factory() as s:
            row = await self._get_row(s, type_id, app_id)
            if row is None:
                return None
            _apply_changes(row, changes, self._COLUMNS)
            await s.commit()
            return _to_type(row)

    async def delete(self, type_id: str, *, app_id: str) -> bool:
        """
        Delete a Type and cascade to its Fields and Records.

        The cascade is performed explicitly so it does not depend on the
        database enforcing foreign keys.
        """
        async with self.session_factory() as s:
            row = await self._get_row(s, type_id, app_id)
            if row is None:
                return False
            await s.execute(delete(FieldRow).where(FieldRow.type_id == type_id))
            await s.execute(delete(RecordRow).where(RecordRow.type_id == type_id))
            await s.delete(row)
            await s.commit()
            return True


@dataclass(frozen=True)
class SqlFieldRepository(FieldRepository):
    """SQL implementation of ``FieldRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    _COLUMNS = {"name": "name", "type": "field_type", "config": "config", "required": "required"}

    async def create(self, field: EntityField) -> EntityField:
        async with self.session_factory() as s:
            s.add(
                FieldRow(
                    id=field.id,
                    type_id=field.type_id,
                    name=field.name,
                    field_type=_enum_value(field.type),
                    config=dict(field.config),
                    required=field.required,
                    position=field.position,
                    created_at=field.created_at,
                    updated_at=field.updated_at,
                )
            )
            await s.commit()
        return field

    async def _get_row(self, s: AsyncSession, field_id: str, type_id: str) -> Optional[FieldRow]:
        stmt = select(FieldRow).where(FieldRow.id == field_id, FieldRow.type_id == type_id)
        return (await s.execute(stmt)).scalar_one_or_none()

    async def get(self, field_id: str, *, type_id: str) -> Optional[EntityField]:
        async with self.session_factory() as s:
            row = await self._get_row(s, field_id, type_id)
            return _to_field(row) if row is not None else None

    async def list(self, type_id: str) -> List[EntityField]:
        async with self.session_factory() as s:
            stmt = select(FieldRow).where(FieldRow.type_id == type_id).order_by(FieldRow.position, FieldRow.created_at)
            rows = (await s.execute(stmt)).scalars().all()
            return [_to_field(r) for r in rows]

    async def count(self, type_id: str) -> int:
        async with self.session_factory() as s:
            stmt = select(func.count()).select_from(FieldRow).where(FieldRow.type_id == type_id)
            return int(await s.scalar(stmt) or 0)

    async def update(self, field_id: str, *, type_id: str, changes: Mapping[str, Any]) -> Optional[EntityField]:
        async with self.session_factory() as s:
            row = await self._get_row(s, field_id, type_id)
            if row is None:
                return None
            _apply_changes(row, changes, self._COLUMNS)
            await s.commit()
            return _to_field(row)

    async def delete(self, field_id: str, *, type_id: str) -> bool:
        async with self.session_factory() as s:
            row = await self._get_row(s, field_id, type_id)
            if row is None:
                return False
            await s.delete(row)
            await s.commit()
            return True


@dataclass(frozen=True)
class SqlRecordRepository(RecordRepository):
    """SQL implementation of ``RecordRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, record: Record) -> Record:
        async with self.session_factory() as s:
            s.add(
                RecordRow(
                    id=record.id,
                    type_id=record.type_id,
                    data=dict(record.data),
                    created_by=record.created_by,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )
            )
            await s.commit()
        return record

    async def _get_row(self, s: AsyncSession, record_id: str, type_id: str) -> Optional[RecordRow]:
        stmt = select(RecordRow).where(RecordRow.id == record_id, RecordRow.type_id == type_id)
        return (await s.execute(stmt)).scalar_one_or_none()

    async def get(self, record_id: str, *, type_id: str) -> Optional[Record]:
        async with self.session_factory() as s:
            row = await self._get_row(s, record_id, type_id)
            return _to_record(row) if row is not None else None

    async def list(self, type_id: str, *, limit: int = 20, offset: int = 0) -> List[Record]:
        async with self.session_factory() as s:
            stmt = (
                select(RecordRow)
                .where(RecordRow.type_id == type_id)
                .order_by(RecordRow.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            rows = (await s.execute(stmt)).scalars().all()
            return [_to_record(r) for r in rows]

    async def count(self, type_id: str) -> int:
        async with self.session_factory() as s:
            stmt = select(func.count()).select_from(RecordRow).where(RecordRow.type_id == type_id)
            return int(await s.scalar(stmt) or 0)

    async def update_data(self, record_id: str, *, type_id: str, data: Dict[str, Any]) -> Optional[Record]:
        async with self.session_factory() as s:
            row = await self._get_row(s, record_id, type_id)
            if row is None:
                return None
            # assign a new dict so the JSON column is flagged dirty
            row.data = dict(data)
            row.updated_at = _utc_now()
            await s.commit()
            return _to_record(row)

    async def delete(self, record_id: str, *, type_id: str) -> bool:
        async with self.session_factory() as s:
            row = await self._get_row(s, record_id, type_id)
            if row is None:
                return False
            await s.delete(row)
            await s.commit()
            return True


@dataclass(frozen=True)
class SqlAutomationRepository(AutomationRepository):
    """SQL implementation of ``AutomationRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    _COLUMNS = {
        "name": "name",
        "description": "description",
        "trigger": "trigger",
        "code": "code",
        "enabled": "enabled",
    }

    async def create(self, automation: Automation) -> Automation:
        async with self.session_factory() as s:
            s.add(
                AutomationRow(
                    id=automation.id,
                    app_id=automation.app_id,
                    type_id=automation.type_id,
                    name=automation.name,
                    description=automation.description,
                    trigger=_enum_value(automation.trigger),
                    code=automation.code,
                    enabled=automation.enabled,
                    created_by=automation.created_by,
                    created_at=automation.created_at,
                    updated_at=automation.updated_at,
                )
            )
            await s.commit()
        return automation

    async def _get_row(self, s: AsyncSession, automation_id: str, app_id: str) -> Optional[AutomationRow]:
        stmt = select(AutomationRow).where(AutomationRow.id == automation_id, AutomationRow.app_id == app_id)
        return (await s.execute(stmt)).scalar_one_or_none()

    async def get(self, automation_id: str, *, app_id: str) -> Optional[Automation]:
        async with self.session_factory() as s:
            row = await self._get_row(s, automation_id, app_id)
            return _to_automation(row) if row is not None else None

    async def list(self, app_id: str, *, type_id: Optional[str] = None) -> List[Automation]:
        async with self.session_factory() as s:
            stmt = select(AutomationRow).where(AutomationRow.app_id == app_id)
            if type_id:
                stmt = stmt.where(AutomationRow.type_id == type_id)
            stmt = stmt.order_by(AutomationRow.created_at.desc())
            rows = (await s.execute(stmt)).scalars().all()
            return [_to_automation(r) for r in rows]

    async def list_matching(
        self, *, app_id: str, type_id: str, trigger: AutomationTrigger | str
    ) -> List[Automation]:
        async with self.session_factory() as s:
            stmt = select(AutomationRow).where(
                AutomationRow.app_id == app_id,
                AutomationRow.type_id == type_id,
                AutomationRow.trigger == _enum_value(trigger),
                AutomationRow.enabled.is_(True),
            )
            rows = (await s.execute(stmt)).scalars().all()
            return [_to_automation(r) for r in rows]

    async def update(
        self, automation_id: str, *, app_id: str, changes: Mapping[str, Any]
    ) -> Optional[Automation]:
        async with self.session_factory() as s:
            row = await self._get_row(s, automation_id, app_id)
            if row is None:
                return None
            _apply_changes(row, changes, self._COLUMNS)
            await s.commit()
            return _to_automation(row)

    async def delete(self, automation_id: str, *, app_id: str) -> bool:
        async with self.session_factory() as s:
            row = await self._get_row(s, automation_id, app_id)
            if row is None:
                return False
            await s.execute(delete(AutomationRunRow).where(AutomationRunRow.automation_id == automation_id))
            await s.delete(row)
            await s.commit()
            return True


@dataclass(frozen=True)
class SqlAutomationRunRepository(AutomationRunRepository):
    """SQL implementation of ``AutomationRunRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, run: AutomationRun) -> AutomationRun:
        async with self.session_factory() as s:
            s.add(
                AutomationRunRow(
                    id=run.id,
                    automation_id=run.automation_id,
                    status=_enum_value(run.status),
                    trigger_event=run.trigger_event,
                    trigger_record_id=run.trigger_record_id,
                    logs=[entry.model_dump(mode="json") for entry in run.logs],
                    error=run.error,
                    duration_ms=run.duration_ms,
                    created_at=run.created_at,
                )
            )
            await s.commit()
        return run

    async def finish(
        self,
        run_id: str,
        *,
        status: AutomationRunStatus,
        logs: List[RunLogEntry],
        error: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> None:
        async with self.session_factory() as s:
            row = await s.get(AutomationRunRow, run_id)
            if row is None:
                return
            row.status = _enum_value(status)
            row.logs = [entry.model_dump(mode="json") for entry in logs]
            row.error = error
            row.duration_ms = duration_ms
            await s.commit()

    async def get(self, run_id: str) -> Optional[AutomationRun]:
        async with self.session_factory() as s:
            row = await s.get(AutomationRunRow, run_id)
            return _to_run(row) if row is not None else None

    async def list(self, automation_id: str, *, limit: int = 20, offset: int = 0) -> List[AutomationRun]:
        async with self.session_factory() as s:
            stmt = (
                select(AutomationRunRow)
                .where(AutomationRunRow.automation_id == automation_id)
                .order_by(AutomationRunRow.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            rows = (await s.execute(stmt)).scalars().all()
            return [_to_run(r) for r in rows]

    async def count(self, automation_id: str) -> int:
        async with self.session_factory() as s:
            stmt = select(func.count()).select_from(AutomationRunRow).where(
                AutomationRunRow.automation_id == automation_id
            )
            return int(await s.scalar(stmt) or 0)


@dataclass(frozen=True)
class PlatformStore:
    """Bundle of repositories handed to the tool layer, runner and server."""

    apps: AppRepository
    types: TypeRepository
    fields: FieldRepository
    records: RecordRepository
    automations: AutomationRepository
    automation_runs: AutomationRunRepository


def build_sql_store(*, session_factory: async_sessionmaker[AsyncSession]) -> PlatformStore:
    """
    Construct the SQL repository bundle.

    Args:
        session_factory: The session factory shared by all repositories.

    Returns:
        A ``PlatformStore`` backed by SQLAlchemy.
    """
    return PlatformStore(
        apps=SqlAppRepository(session_factory),
        types=SqlTypeRepository(session_factory),
        fields=SqlFieldRepository(session_factory),
        records=SqlRecordRepository(session_factory),
        automations=SqlAutomationRepository(session_factory),
        automation_runs=SqlAutomationRunRepository(session_factory),
    )
