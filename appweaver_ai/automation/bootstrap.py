"""Script bootstrap and stdout protocol for automation runs.

The user's code is wrapped in a preamble exposing the event context and a set
of helpers. Helpers never touch the store directly: mutations are queued in
``_actions`` and printed as one ``__ACTIONS__:<json>`` line at the end, and
log helpers print ``__LOG__:``/``__WARN__:``/``__ERROR__:`` lines. The host
parses stdout and applies the queued mutations itself.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..core.logging_config import get_logger
from ..core.models.domain import Automation, RecordEvent, RunLogEntry, RunLogLevel

logger = get_logger(__name__)

ACTIONS_PREFIX = "__ACTIONS__:"
LOG_PREFIXES = {
    "__LOG__:": RunLogLevel.info,
    "__WARN__:": RunLogLevel.warn,
    "__ERROR__:": RunLogLevel.error,
}

_PREAMBLE = '''
import json as _json

try:
    import pandas as pd
except ImportError:
    pd = None

# Event context
ctx = _json.loads({ctx_json})

# Field ID <-> Name mapping
field_map = _json.loads({field_map_json})

# Action queue (mutations executed by the host)
_actions = []

def create_record(type_id, data):
    """Queue a record creation. Data keys should be field IDs."""
    _actions.append({{"action": "create_record", "type_id": type_id, "data": data}})

def update_record(type_id, record_id, data):
    """Queue a record update. Data keys should be field IDs."""
    _actions.append({{"action": "update_record", "type_id": type_id, "record_id": record_id, "data": data}})

def delete_record(type_id, record_id):
    """Queue a record deletion."""
    _actions.append({{"action": "delete_record", "type_id": type_id, "record_id": record_id}})

def log(msg):
    """Log a message (visible in automation run logs)."""
    print(f"__LOG__:{{msg}}")

def warn(msg):
    """Log a warning (visible in automation run logs)."""
    print(f"__WARN__:{{msg}}")

def error(msg):
    """Log an error (visible in automation run logs)."""
    print(f"__ERROR__:{{msg}}")
'''.strip()

_TRAILER = '''
# --- Output actions ---
print("__ACTIONS__:" + _json.dumps(_actions))
'''.strip()


class CreateRecordAction(BaseModel):
    action: Literal["create_record"]
    type_id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class UpdateRecordAction(BaseModel):
    action: Literal["update_record"]
    type_id: str
    record_id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class DeleteRecordAction(BaseModel):
    action: Literal["delete_record"]
    type_id: str
    record_id: str


MutationAction = Annotated[
    Union[CreateRecordAction, UpdateRecordAction, DeleteRecordAction],
    Field(discriminator="action"),
]

_action_adapter: TypeAdapter[MutationAction] = TypeAdapter(MutationAction)


def build_context(event: Optional[RecordEvent]) -> Dict[str, Any]:
    """The ``ctx`` dict exposed to scripts; manual runs get an empty record."""
    if event is None:
        return {"type": "manual", "record": {}, "record_id": None, "previous_record": None}
    return {
        "type": event.type.value,
        "record": event.record,
        "record_id": event.record_id,
        "previous_record": event.previous_record,
    }


def build_script(automation: Automation, event: Optional[RecordEvent], field_map: Mapping[str, str]) -> str:
    """
    Wrap the automation's code with the bootstrap preamble and action trailer.

    JSON documents are embedded as Python string literals via ``repr`` so no
    user data can break out of the literal.
    """
    preamble = _PREAMBLE.format(
        ctx_json=repr(json.dumps(build_context(event), default=str)),
        field_map_json=repr(json.dumps(dict(field_map))),
    )
    return f"{preamble}\n\n# --- User automation code ---\n{automation.code}\n\n{_TRAILER}\n"


@dataclass
class ParsedOutput:
    logs: List[RunLogEntry] = field(default_factory=list)
    actions: List[Union[CreateRecordAction, UpdateRecordAction, DeleteRecordAction]] = field(default_factory=list)


def parse_output(stdout: str) -> ParsedOutput:
    """
    Split script stdout into run log entries and queued mutation actions.

    Lines without a known prefix are ignored. A malformed ``__ACTIONS__`` line
    yields no actions; individual malformed actions are dropped.
    """
    parsed = ParsedOutput()
    for line in stdout.splitlines():
        for prefix, level in LOG_PREFIXES.items():
            if line.startswith(prefix):
                parsed.logs.append(RunLogEntry(level=level, message=line[len(prefix):]))
                break
        else:
            if line.startswith(ACTIONS_PREFIX):
                parsed.actions = _parse_actions(line[len(ACTIONS_PREFIX):])
    return parsed


def _parse_actions(payload: str) -> List[Union[CreateRecordAction, UpdateRecordAction, DeleteRecordAction]]:
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Ignoring unparseable actions line from automation script")
        return []
    if not isinstance(raw, list):
        return []
    actions = []
    for item in raw:
        try:
            actions.append(_action_adapter.validate_python(item))
        except ValidationError as exc:
            logger.warning("Dropping malformed automation action %r: %s", item, exc)
    return actions
