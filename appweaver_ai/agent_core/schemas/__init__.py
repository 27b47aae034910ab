from .conversation import (
    ContentUnit,
    ConversationTurn,
    ModelTurn,
    StopReason,
    TextUnit,
    ToolResultUnit,
    ToolUseUnit,
)
from .stream import StreamEvent, StreamEventType

__all__ = [
    "ContentUnit",
    "ConversationTurn",
    "ModelTurn",
    "StopReason",
    "StreamEvent",
    "StreamEventType",
    "TextUnit",
    "ToolResultUnit",
    "ToolUseUnit",
]
