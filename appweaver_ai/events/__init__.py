"""Process-wide event bus carrying record mutation events."""

from .bus import RECORD_EVENT_TOPIC, EventBus, EventHandler, RecordEventPublisher

__all__ = ["RECORD_EVENT_TOPIC", "EventBus", "EventHandler", "RecordEventPublisher"]
