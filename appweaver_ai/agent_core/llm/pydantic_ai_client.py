"""``ModelClient`` implementation on top of pydantic-ai's direct model API.

The orchestrator drives its own tool loop, so instead of a pydantic-ai
``Agent`` this client issues single requests with ``pydantic_ai.direct
.model_request`` and translates between the provider-neutral conversation
types and pydantic-ai messages.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Union

from pydantic_ai.direct import model_request
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition

from ...core.errors import UpstreamError
from ...core.logging_config import get_logger
from ..schemas.conversation import (
    ConversationTurn,
    ModelTurn,
    StopReason,
    TextUnit,
    ToolResultUnit,
    ToolUseUnit,
)
from ..tools.base import ToolSpec

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_MAX_TOKENS = 4096

_FINISH_REASONS = {
    "stop": StopReason.end_turn,
    "tool_call": StopReason.tool_use,
    "length": StopReason.max_tokens,
}


def build_model(model_name: str = DEFAULT_MODEL, api_key: Optional[str] = None) -> Union[Model, str]:
    """
    Create the pydantic-ai model for ``model_name``.

    ``provider:model`` strings are passed through and resolved by pydantic-ai
    at request time. Bare Claude model ids become an ``AnthropicModel``,
    authenticated with ``api_key`` when one is configured.
    """
    if ":" in model_name:
        return model_name
    if api_key:
        from pydantic_ai.models.anthropic import AnthropicModel
        from pydantic_ai.providers.anthropic import AnthropicProvider

        logger.debug("Creating Anthropic model: %s with Pydantic AI", model_name)
        return AnthropicModel(model_name, provider=AnthropicProvider(api_key=api_key))
    return f"anthropic:{model_name}"


def to_model_messages(system_prompt: str, messages: List[ConversationTurn]) -> List[ModelMessage]:
    """Translate conversation turns into pydantic-ai messages, system prompt first."""
    out: List[ModelMessage] = []
    for turn in messages:
        if turn.role == "user":
            if isinstance(turn.content, str):
                out.append(ModelRequest(parts=[UserPromptPart(content=turn.content)]))
                continue
            request_parts = []
            for unit in turn.content:
                if isinstance(unit, ToolResultUnit):
                    request_parts.append(
                        ToolReturnPart(tool_name=unit.name, content=unit.content, tool_call_id=unit.tool_use_id)
                    )
                elif isinstance(unit, TextUnit):
                    request_parts.append(UserPromptPart(content=unit.text))
            out.append(ModelRequest(parts=request_parts))
        else:
            if isinstance(turn.content, str):
                out.append(ModelResponse(parts=[TextPart(content=turn.content)]))
                continue
            response_parts = []
            for unit in turn.content:
                if isinstance(unit, TextUnit):
                    response_parts.append(TextPart(content=unit.text))
                elif isinstance(unit, ToolUseUnit):
                    response_parts.append(
                        ToolCallPart(tool_name=unit.name, args=dict(unit.input), tool_call_id=unit.id)
                    )
            out.append(ModelResponse(parts=response_parts))

    system_part = SystemPromptPart(content=system_prompt)
    if out and isinstance(out[0], ModelRequest):
        out[0] = ModelRequest(parts=[system_part, *out[0].parts])
    else:
        out.insert(0, ModelRequest(parts=[system_part]))
    return out


def to_model_turn(response: ModelResponse) -> ModelTurn:
    """Translate a pydantic-ai response into a provider-neutral ``ModelTurn``."""
    units: list = []
    for part in response.parts:
        if isinstance(part, TextPart):
            if part.content:
                units.append(TextUnit(text=part.content))
        elif isinstance(part, ToolCallPart):
            units.append(ToolUseUnit(id=part.tool_call_id, name=part.tool_name, input=part.args_as_dict()))
        # thinking and other part kinds are not surfaced

    finish_reason = getattr(response, "finish_reason", None)
    stop_reason = _FINISH_REASONS.get(finish_reason) if finish_reason else None
    if stop_reason is None:
        has_tools = any(isinstance(u, ToolUseUnit) for u in units)
        stop_reason = StopReason.tool_use if has_tools else StopReason.end_turn
    return ModelTurn(content=units, stop_reason=stop_reason)


class PydanticAIModelClient:
    """Single-request model client backed by pydantic-ai."""

    def __init__(self, model: Union[Model, str], *, max_tokens: int = DEFAULT_MAX_TOKENS) -> None:
        self._model = model
        self._max_tokens = max_tokens

    async def complete(
        self,
        *,
        system_prompt: str,
        tools: Sequence[ToolSpec],
        messages: List[ConversationTurn],
    ) -> ModelTurn:
        params = ModelRequestParameters(
            function_tools=[
                ToolDefinition(name=t.name, description=t.description, parameters_json_schema=t.input_schema)
                for t in tools
            ],
            allow_text_output=True,
        )
        try:
            response = await model_request(
                self._model,
                to_model_messages(system_prompt, messages),
                model_settings=ModelSettings(max_tokens=self._max_tokens),
                model_request_parameters=params,
            )
        except Exception as exc:
            logger.error("Model request failed: %s", exc, exc_info=True)
            raise UpstreamError(f"Model request failed: {exc}") from exc
        return to_model_turn(response)
