from __future__ import annotations

"""Sandbox runner: execute one automation invocation end to end.

Lifecycle of an invocation
--------------------------

1. Insert an ``AutomationRun`` with status ``running``.
2. Without a configured sandbox, or when the code fails the static guard,
   the run ends as ``error`` without executing anything.
3. Build the field map (id <-> name) and the bootstrapped script.
4. Execute the script in the sandbox and parse its stdout protocol.
5. A script error ends the run as ``error`` with the error name/value.
6. Otherwise apply the queued mutations host-side, each scoped to the
   automation's App, publishing every resulting record event with
   ``triggered_by_automation=True`` so the dispatcher ignores it.
7. The run ends as ``success``; a sandbox timeout ends it as ``timeout`` and
   any other exception as ``error``. The duration is always recorded.

``run_automation`` returns the run id and only raises if the run row itself
cannot be written.
"""

import time
from typing import Dict, List, Optional, Protocol, Union

from ..core.database.repositories import PlatformStore
from ..core.errors import SandboxTimeoutError
from ..core.logging_config import get_logger
from ..core.models.domain import (
    Automation,
    AutomationRun,
    AutomationRunStatus,
    Record,
    RecordEvent,
    RecordEventType,
    RunLogEntry,
    RunLogLevel,
)
from ..events import RecordEventPublisher
from .bootstrap import (
    CreateRecordAction,
    DeleteRecordAction,
    UpdateRecordAction,
    build_script,
    parse_output,
)
from .guard import check_script
from .sandbox import DEFAULT_TIMEOUT_SECONDS, ScriptSandbox

logger = get_logger(__name__)

SANDBOX_NOT_CONFIGURED = "Script sandbox not configured. Automations require a sandbox to run."
SCRIPT_REJECTED = "Script rejected: it uses modules or builtins automations may not access."


class SandboxRunner(Protocol):
    """Protocol for components that execute one automation invocation."""

    async def run_automation(self, automation: Automation, event: Optional[RecordEvent]) -> str:
        """
        Execute ``automation`` for ``event`` (``None`` for a manual run).

        Returns:
            The id of the recorded ``AutomationRun``.
        """
        ...


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class SandboxAutomationRunner:
    """``SandboxRunner`` that records runs and applies script mutations."""

    def __init__(
        self,
        *,
        store: PlatformStore,
        publish: RecordEventPublisher,
        sandbox: Optional[ScriptSandbox] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._publish = publish
        self._sandbox = sandbox
        self._timeout = timeout_seconds

    async def run_automation(self, automation: Automation, event: Optional[RecordEvent]) -> str:
        start = time.monotonic()
        logs: List[RunLogEntry] = []
        run = await self._store.automation_runs.create(
            AutomationRun(
                automation_id=automation.id,
                status=AutomationRunStatus.running,
                trigger_event=event.type.value if event is not None else "manual",
                trigger_record_id=event.record_id if event is not None else None,
            )
        )
        logger.info("Automation %s run %s started (%s)", automation.id, run.id, run.trigger_event)

        if self._sandbox is None:
            await self._finish(run.id, AutomationRunStatus.error, logs, start, error=SANDBOX_NOT_CONFIGURED)
            return run.id

        violations = check_script(automation.code)
        if violations:
            logger.warning("Automation %s rejected: %s", automation.id, "; ".join(violations))
            logs.extend(RunLogEntry(level=RunLogLevel.error, message=v) for v in violations)
            await self._finish(run.id, AutomationRunStatus.error, logs, start, error=SCRIPT_REJECTED)
            return run.id

        try:
            field_map = await self._field_map(automation)
            script = build_script(automation, event, field_map)
            execution = await self._sandbox.execute(script, timeout=self._timeout)
            parsed = parse_output(execution.stdout)
            logs.extend(parsed.logs)

            if execution.error is not None:
                message = str(execution.error)
                logs.append(RunLogEntry(level=RunLogLevel.error, message=f"Execution error: {message}"))
                if execution.stderr:
                    logs.append(RunLogEntry(level=RunLogLevel.error, message=execution.stderr))
                await self._finish(run.id, AutomationRunStatus.error, logs, start, error=message)
                return run.id

            await self._apply_actions(parsed.actions, automation)
            if parsed.actions:
                logs.append(RunLogEntry(level=RunLogLevel.info, message=f"Executed {len(parsed.actions)} action(s)"))
            await self._finish(run.id, AutomationRunStatus.success, logs, start)
        except SandboxTimeoutError as exc:
            await self._finish(run.id, AutomationRunStatus.timeout, logs, start, error=str(exc))
        except Exception as exc:
            logger.error("Automation %s run %s failed: %s", automation.id, run.id, exc, exc_info=True)
            status = AutomationRunStatus.timeout if "timeout" in str(exc).lower() else AutomationRunStatus.error
            await self._finish(run.id, status, logs, start, error=str(exc) or type(exc).__name__)
        return run.id

    async def _finish(
        self,
        run_id: str,
        status: AutomationRunStatus,
        logs: List[RunLogEntry],
        start: float,
        *,
        error: Optional[str] = None,
    ) -> None:
        duration_ms = _elapsed_ms(start)
        await self._store.automation_runs.finish(
            run_id, status=status, logs=logs, error=error, duration_ms=duration_ms
        )
        logger.info("Automation run %s finished: %s in %dms", run_id, status.value, duration_ms)

    async def _field_map(self, automation: Automation) -> Dict[str, str]:
        if not automation.type_id:
            return {}
        mapping: Dict[str, str] = {}
        for f in await self._store.fields.list(automation.type_id):
            mapping[f.id] = f.name
            mapping[f.name] = f.id
        return mapping

    async def _apply_actions(
        self,
        actions: List[Union[CreateRecordAction, UpdateRecordAction, DeleteRecordAction]],
        automation: Automation,
    ) -> None:
        for action in actions:
            try:
                await self._apply_action(action, automation)
            except Exception as exc:
                logger.error("Automation %s: action %s failed: %s", automation.id, action.action, exc, exc_info=True)

    async def _apply_action(
        self,
        action: Union[CreateRecordAction, UpdateRecordAction, DeleteRecordAction],
        automation: Automation,
    ) -> None:
        store = self._store
        if await store.types.get(action.type_id, app_id=automation.app_id) is None:
            logger.error("Automation %s: type %s not found in app", automation.id, action.type_id)
            return

        if isinstance(action, CreateRecordAction):
            created = await store.records.create(
                Record(type_id=action.type_id, data=action.data, created_by=automation.created_by)
            )
            self._emit(RecordEventType.record_created, automation, action.type_id, created.id, created.data)
        elif isinstance(action, UpdateRecordAction):
            existing = await store.records.get(action.record_id, type_id=action.type_id)
            if existing is None:
                return
            merged = {**existing.data, **action.data}
            updated = await store.records.update_data(action.record_id, type_id=action.type_id, data=merged)
            if updated is None:
                return
            self._emit(
                RecordEventType.record_updated,
                automation,
                action.type_id,
                updated.id,
                updated.data,
                previous=existing.data,
            )
        else:
            existing = await store.records.get(action.record_id, type_id=action.type_id)
            if existing is None:
                return
            await store.records.delete(action.record_id, type_id=action.type_id)
            self._emit(RecordEventType.record_deleted, automation, action.type_id, existing.id, existing.data)

    def _emit(
        self,
        kind: RecordEventType,
        automation: Automation,
        type_id: str,
        record_id: str,
        record: Dict,
        *,
        previous: Optional[Dict] = None,
    ) -> None:
        self._publish(
            RecordEvent(
                type=kind,
                app_id=automation.app_id,
                type_id=type_id,
                record_id=record_id,
                record=record,
                previous_record=previous,
                user_id=automation.created_by,
                triggered_by_automation=True,
            )
        )
