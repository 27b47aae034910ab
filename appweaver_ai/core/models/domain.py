from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import ConfigDict, Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class FieldType(str, Enum):
    text = "text"
    rich_text = "rich_text"
    number = "number"
    boolean = "boolean"
    date = "date"
    select = "select"
    multi_select = "multi_select"
    url = "url"
    email = "email"
    relation = "relation"


class RecordEventType(str, Enum):
    record_created = "record_created"
    record_updated = "record_updated"
    record_deleted = "record_deleted"


class AutomationTrigger(str, Enum):
    record_created = "record_created"
    record_updated = "record_updated"
    record_deleted = "record_deleted"
    manual = "manual"


class AutomationRunStatus(str, Enum):
    running = "running"
    success = "success"
    error = "error"
    timeout = "timeout"


class RunLogLevel(str, Enum):
    info = "info"
    warn = "warn"
    error = "error"


class App(BaseSchema):
    """Root of tenancy: every Type and Automation belongs to exactly one App."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class EntityType(BaseSchema):
    """A user-defined entity kind (a "Type") inside an App."""

    id: str = Field(default_factory=_new_id)
    app_id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    position: int = 0
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class EntityField(BaseSchema):
    """A typed attribute of an ``EntityType``.

    ``config`` carries ``options`` for select/multi_select and
    ``relatedTypeId`` for relation fields.
    """

    id: str = Field(default_factory=_new_id)
    type_id: str
    name: str
    type: FieldType
    config: Dict[str, Any] = Field(default_factory=dict)
    required: bool = False
    position: int = 0
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class Record(BaseSchema):
    id: str = Field(default_factory=_new_id)
    type_id: str
    data: Dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class Automation(BaseSchema):
    id: str = Field(default_factory=_new_id)
    app_id: str
    type_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    trigger: AutomationTrigger
    code: str
    enabled: bool = True
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class RunLogEntry(BaseSchema):
    timestamp: datetime = Field(default_factory=_utc_now)
    level: RunLogLevel = RunLogLevel.info
    message: str


class AutomationRun(BaseSchema):
    id: str = Field(default_factory=_new_id)
    automation_id: str
    status: AutomationRunStatus = AutomationRunStatus.running
    trigger_event: str
    trigger_record_id: Optional[str] = None
    logs: List[RunLogEntry] = Field(default_factory=list)
    error: Optional[str] = None
    duration_ms: Optional[int] = None
    created_at: datetime = Field(default_factory=_utc_now)


class RecordEvent(BaseSchema):
    """Ephemeral notification of a record mutation.

    ``triggered_by_automation`` is the cycle guard: the dispatcher discards
    events produced by automation scripts so they cannot re-trigger automations.
    """

    model_config = ConfigDict(frozen=True)

    type: RecordEventType
    app_id: str
    type_id: str
    record_id: str
    record: Dict[str, Any] = Field(default_factory=dict)
    previous_record: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None
    triggered_by_automation: bool = False
