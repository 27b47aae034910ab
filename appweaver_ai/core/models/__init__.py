"""Platform domain models shared across the tool layer, automations and the server."""

from .base import BaseSchema
from .domain import (
    App,
    Automation,
    AutomationRun,
    AutomationRunStatus,
    AutomationTrigger,
    EntityField,
    EntityType,
    FieldType,
    Record,
    RecordEvent,
    RecordEventType,
    RunLogEntry,
    RunLogLevel,
)

__all__ = [
    "App",
    "Automation",
    "AutomationRun",
    "AutomationRunStatus",
    "AutomationTrigger",
    "BaseSchema",
    "EntityField",
    "EntityType",
    "FieldType",
    "Record",
    "RecordEvent",
    "RecordEventType",
    "RunLogEntry",
    "RunLogLevel",
]
