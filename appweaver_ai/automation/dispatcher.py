from __future__ import annotations

"""Automation dispatcher.

The dispatcher is the sole consumer of the ``record_event`` topic. For every
record event that did not originate from an automation it looks up the
enabled automations bound to the event's App, Type and trigger, and starts one
independent sandbox run per match.

Isolation rules
---------------

- Events with ``triggered_by_automation`` set are dropped before any lookup,
  which is what keeps automations from cascading into each other.
- A failing lookup is logged and the event dropped.
- Each automation runs in its own supervised task: one failing run is logged
  and affects neither its siblings nor the publisher of the event.
"""

from typing import Optional

from ..core.database.repositories import AutomationRepository
from ..core.logging_config import get_logger
from ..core.models.domain import Automation, RecordEvent
from ..core.tasks import TaskSupervisor
from ..events import RECORD_EVENT_TOPIC, EventBus
from .runner import SandboxRunner

logger = get_logger(__name__)


class AutomationDispatcher:
    """Route record events to matching automations."""

    def __init__(
        self,
        *,
        automations: AutomationRepository,
        runner: SandboxRunner,
        supervisor: Optional[TaskSupervisor] = None,
    ) -> None:
        self._automations = automations
        self._runner = runner
        self._supervisor = supervisor or TaskSupervisor("automation_dispatcher")
        self._bus: Optional[EventBus] = None

    def start(self, bus: EventBus) -> None:
        """Subscribe to record events on ``bus``. Idempotent."""
        if self._bus is bus:
            return
        bus.subscribe(RECORD_EVENT_TOPIC, self.handle_event)
        self._bus = bus
        logger.info("Automation dispatcher subscribed to %s", RECORD_EVENT_TOPIC)

    def stop(self) -> None:
        if self._bus is not None:
            self._bus.unsubscribe(RECORD_EVENT_TOPIC, self.handle_event)
            self._bus = None

    async def handle_event(self, event: RecordEvent) -> int:
        """
        Dispatch ``event`` to every matching automation.

        Args:
            event: The record mutation event.

        Returns:
            The number of automation runs started.
        """
        if event.triggered_by_automation:
            logger.debug("Ignoring automation-originated %s for record %s", event.type.value, event.record_id)
            return 0

        try:
            matching = await self._automations.list_matching(
                app_id=event.app_id,
                type_id=event.type_id,
                trigger=event.type.value,
            )
        except Exception as exc:
            logger.error(
                "Automation lookup failed for %s on type %s: %s", event.type.value, event.type_id, exc, exc_info=True
            )
            return 0

        for automation in matching:
            self._supervisor.spawn(self._run_one(automation, event), name=f"automation:{automation.id}")
        if matching:
            logger.info(
                "Dispatched %d automation(s) for %s on record %s", len(matching), event.type.value, event.record_id
            )
        return len(matching)

    async def _run_one(self, automation: Automation, event: RecordEvent) -> None:
        try:
            await self._runner.run_automation(automation, event)
        except Exception as exc:
            logger.error("Automation %s failed: %s", automation.id, exc, exc_info=True)

    async def wait_idle(self) -> None:
        """Wait until every started automation run has finished."""
        await self._supervisor.join()
