"""Events streamed to the chat client while the orchestrator runs.

Ordering guarantees per request:

- ``id`` increases monotonically from 0.
- ``tool_use_start`` for a tool precedes its ``tool_result``.
- at most one ``error`` event.
- exactly one ``message_done`` event, always the last one.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Callable, Dict

from pydantic import BaseModel, Field


class StreamEventType(str, Enum):
    text_delta = "text_delta"
    tool_use_start = "tool_use_start"
    tool_result = "tool_result"
    error = "error"
    message_done = "message_done"


class StreamEvent(BaseModel):
    id: int
    event: StreamEventType
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_sse(self) -> Dict[str, str]:
        """Shape accepted by ``sse_starlette.EventSourceResponse``."""
        return {"event": self.event.value, "id": str(self.id), "data": json.dumps(self.data, default=str)}


class StreamEmitter:
    """Assign ids and hand events to a sink in emission order."""

    def __init__(self, sink: Callable[[StreamEvent], None]) -> None:
        self._sink = sink
        self._next_id = 0
        self._errored = False
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def _emit(self, event: StreamEventType, data: Dict[str, Any]) -> None:
        if self._done:
            return
        self._sink(StreamEvent(id=self._next_id, event=event, data=data))
        self._next_id += 1

    def text_delta(self, text: str) -> None:
        self._emit(StreamEventType.text_delta, {"text": text})

    def tool_use_start(self, tool_use_id: str, name: str, tool_input: Dict[str, Any]) -> None:
        self._emit(StreamEventType.tool_use_start, {"tool_use_id": tool_use_id, "name": name, "input": tool_input})

    def tool_result(self, tool_use_id: str, name: str, payload: Dict[str, Any]) -> None:
        self._emit(StreamEventType.tool_result, {"tool_use_id": tool_use_id, "name": name, **payload})

    def error(self, message: str) -> None:
        if self._errored:
            return
        self._errored = True
        self._emit(StreamEventType.error, {"error": message})

    def message_done(self) -> None:
        self._emit(StreamEventType.message_done, {})
        self._done = True
