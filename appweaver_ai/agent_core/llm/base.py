from __future__ import annotations

"""Language-model client contract.

The orchestrator only depends on ``ModelClient``: given the system prompt,
the tool catalog and the running conversation, return one model turn made of
text and tool-use units. Tests substitute scripted fakes.
"""

from typing import List, Protocol, Sequence

from ..schemas.conversation import ConversationTurn, ModelTurn
from ..tools.base import ToolSpec


class ModelClient(Protocol):
    """Protocol for language-model clients."""

    async def complete(
        self,
        *,
        system_prompt: str,
        tools: Sequence[ToolSpec],
        messages: List[ConversationTurn],
    ) -> ModelTurn:
        """
        Request one model turn.

        Args:
            system_prompt: Instructions including the current schema description.
            tools: Tool catalog the model may call.
            messages: Full conversation so far, including prior tool results.

        Returns:
            The model's content units and stop reason.

        Raises:
            UpstreamError: If the provider call fails.
        """
        ...
