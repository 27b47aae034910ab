"""In-process publish/subscribe bus for record mutation events.

One bus instance exists per process; it is created by the service container
and injected wherever events are published or consumed.

Delivery semantics
------------------

- ``publish`` never blocks on subscribers and never raises because of them:
  every subscriber invocation is scheduled as its own supervised task.
- Each subscriber receives its own deep copy of the event, so a subscriber
  cannot alter what another one sees.
- At-most-once, in-memory only: events published while nobody is subscribed
  are dropped, and nothing is replayed after a restart.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..core.logging_config import get_logger
from ..core.models.domain import RecordEvent
from ..core.tasks import TaskSupervisor

logger = get_logger(__name__)

RECORD_EVENT_TOPIC = "record_event"

EventHandler = Callable[[Any], Awaitable[Any]]
RecordEventPublisher = Callable[[RecordEvent], None]


class EventBus:
    """Topic-keyed fan-out of events to asynchronous subscribers."""

    def __init__(self, *, supervisor: Optional[TaskSupervisor] = None) -> None:
        self._subs: Dict[str, List[EventHandler]] = {}
        self._supervisor = supervisor or TaskSupervisor("event_bus")

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        """
        Register an async handler for ``topic``.

        Args:
            topic: Topic name, e.g. ``RECORD_EVENT_TOPIC``.
            handler: Coroutine function called with a copy of each event.
        """
        self._subs.setdefault(topic, []).append(handler)
        logger.debug("Subscribed %r to topic %s", handler, topic)

    def unsubscribe(self, topic: str, handler: EventHandler) -> bool:
        handlers = self._subs.get(topic)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        if not handlers:
            del self._subs[topic]
        return True

    def subscriber_count(self, topic: str = RECORD_EVENT_TOPIC) -> int:
        return len(self._subs.get(topic, []))

    def publish(self, event: RecordEvent, topic: str = RECORD_EVENT_TOPIC) -> None:
        """
        Schedule delivery of ``event`` to every subscriber of ``topic``.

        Returns immediately; subscribers run on later loop iterations. Must be
        called from within a running event loop.
        """
        handlers = list(self._subs.get(topic, []))
        if not handlers:
            logger.debug("No subscribers for %s; dropping event", topic)
            return
        for handler in handlers:
            snapshot = event.model_copy(deep=True)
            self._supervisor.spawn(handler(snapshot), name=f"{topic}:{getattr(handler, '__name__', 'handler')}")

    def publisher(self, topic: str = RECORD_EVENT_TOPIC) -> RecordEventPublisher:
        """Narrow publish capability for components that must not subscribe."""

        def _publish(event: RecordEvent) -> None:
            self.publish(event, topic)

        return _publish

    async def wait_idle(self) -> None:
        """Wait until every scheduled subscriber invocation has finished."""
        await self._supervisor.join()
