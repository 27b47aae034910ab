from __future__ import annotations

"""Repository interface contracts.

The tool layer, the automation runner and the server depend on these
Protocols instead of concrete persistence implementations.

Contract guidelines
-------------------

- All methods are async.
- Every lookup of a child entity is scoped by its parent id (Types by App,
  Fields and Records by Type, Automations by App). A row that exists but
  belongs to another parent is reported exactly like a missing row.
- ``update``/``delete`` on an unknown (or foreign) id return ``None``/``False``
  instead of raising.
- ``count`` is the sibling count used to assign ``position`` at creation.
  No locking is performed; concurrent creations may observe the same count.
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol

from ...models.domain import (
    App,
    Automation,
    AutomationRun,
    AutomationRunStatus,
    AutomationTrigger,
    EntityField,
    EntityType,
    Record,
    RunLogEntry,
)


class AppRepository(Protocol):
    """Persist Apps, the root of tenancy."""

    async def create(self, app: App) -> App: ...

    async def get(self, app_id: str) -> Optional[App]: ...

    async def get_for_user(self, app_id: str, user_id: str) -> Optional[App]:
        """
        Retrieve an App only if ``user_id`` owns it.

        Args:
            app_id: The App identifier.
            user_id: The caller's user id.

        Returns:
            The App, or None when missing or owned by someone else.
        """
        ...


class TypeRepository(Protocol):
    """Persist Types (user-defined entity kinds) scoped to an App."""

    async def create(self, entity_type: EntityType) -> EntityType: ...

    async def get(self, type_id: str, *, app_id: str) -> Optional[EntityType]: ...

    async def list(self, app_id: str) -> List[EntityType]:
        """List an App's Types ordered by position."""
        ...

    async def count(self, app_id: str) -> int: ...

    async def update(self, type_id: str, *, app_id: str, changes: Mapping[str, Any]) -> Optional[EntityType]: ...

    async def delete(self, type_id: str, *, app_id: str) -> bool:
        """
        Delete a Type together with all of its Fields and Records.

        Returns:
            True when a Type was deleted.
        """
        ...


class FieldRepository(Protocol):
    """Persist Fields scoped to a Type."""

    async def create(self, field: EntityField) -> EntityField: ...

    async def get(self, field_id: str, *, type_id: str) -> Optional[EntityField]: ...

    async def list(self, type_id: str) -> List[EntityField]:
        """List a Type's Fields ordered by position."""
        ...

    async def count(self, type_id: str) -> int: ...

    async def update(self, field_id: str, *, type_id: str, changes: Mapping[str, Any]) -> Optional[EntityField]: ...

    async def delete(self, field_id: str, *, type_id: str) -> bool: ...


class RecordRepository(Protocol):
    """Persist Records scoped to a Type."""

    async def create(self, record: Record) -> Record: ...

    async def get(self, record_id: str, *, type_id: str) -> Optional[Record]: ...

    async def list(self, type_id: str, *, limit: int = 20, offset: int = 0) -> List[Record]:
        """List a Type's Records, newest first."""
        ...

    async def count(self, type_id: str) -> int: ...

    async def update_data(self, record_id: str, *, type_id: str, data: Dict[str, Any]) -> Optional[Record]:
        """Replace a Record's data document (callers merge beforehand)."""
        ...

    async def delete(self, record_id: str, *, type_id: str) -> bool: ...


class AutomationRepository(Protocol):
    """Persist Automations scoped to an App."""

    async def create(self, automation: Automation) -> Automation: ...

    async def get(self, automation_id: str, *, app_id: str) -> Optional[Automation]: ...

    async def list(self, app_id: str, *, type_id: Optional[str] = None) -> List[Automation]:
        """List an App's Automations, newest first, optionally filtered by Type."""
        ...

    async def list_matching(
        self, *, app_id: str, type_id: str, trigger: AutomationTrigger | str
    ) -> List[Automation]:
        """
        List the enabled Automations that react to a record event.

        Args:
            app_id: App the event belongs to.
            type_id: Type of the mutated Record.
            trigger: The event kind (``record_created`` etc.).
        """
        ...

    async def update(
        self, automation_id: str, *, app_id: str, changes: Mapping[str, Any]
    ) -> Optional[Automation]: ...

    async def delete(self, automation_id: str, *, app_id: str) -> bool: ...


class AutomationRunRepository(Protocol):
    """Persist one AutomationRun per dispatch attempt."""

    async def create(self, run: AutomationRun) -> AutomationRun: ...

    async def finish(
        self,
        run_id: str,
        *,
        status: AutomationRunStatus,
        logs: List[RunLogEntry],
        error: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> None:
        """Record the terminal status, logs and duration of a run."""
        ...

    async def get(self, run_id: str) -> Optional[AutomationRun]: ...

    async def list(self, automation_id: str, *, limit: int = 20, offset: int = 0) -> List[AutomationRun]: ...

    async def count(self, automation_id: str) -> int: ...
