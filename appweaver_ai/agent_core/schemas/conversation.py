"""Provider-neutral conversation types exchanged with the language model."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class StopReason(str, Enum):
    end_turn = "end_turn"
    tool_use = "tool_use"
    max_tokens = "max_tokens"
    other = "other"


class _Unit(BaseModel):
    model_config = ConfigDict(extra="forbid")


class TextUnit(_Unit):
    kind: Literal["text"] = "text"
    text: str


class ToolUseUnit(_Unit):
    kind: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultUnit(_Unit):
    kind: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    name: str
    # JSON-encoded ToolResult payload
    content: str


ContentUnit = Annotated[Union[TextUnit, ToolUseUnit, ToolResultUnit], Field(discriminator="kind")]


class ConversationTurn(BaseModel):
    """One conversation message.

    User turns carry either plain text or the tool results of the previous
    assistant turn; assistant turns carry text and tool-use units.
    """

    role: Literal["user", "assistant"]
    content: Union[str, List[ContentUnit]]


class ModelTurn(BaseModel):
    """A single model response."""

    content: List[ContentUnit] = Field(default_factory=list)
    stop_reason: StopReason = StopReason.end_turn

    @property
    def tool_uses(self) -> List[ToolUseUnit]:
        return [unit for unit in self.content if isinstance(unit, ToolUseUnit)]
