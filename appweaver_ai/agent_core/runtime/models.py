from __future__ import annotations

"""Runtime dependency bundle and LangGraph state types.

- ``OrchestratorDeps`` collects the collaborators the orchestrator needs.
- ``_LoopState`` is the state passed between LangGraph nodes for one chat
  request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, NotRequired, Required, TypedDict

from ...core.database.repositories import PlatformStore
from ..llm.base import ModelClient
from ..schemas.conversation import ConversationTurn, ToolUseUnit
from ..tools.executor import ToolExecutor

MAX_ITERATIONS = 25


class OrchestratorPhase(str, Enum):
    awaiting_model = "awaiting_model"
    executing_tools = "executing_tools"
    done = "done"
    iteration_limit = "iteration_limit"
    cancelled = "cancelled"


TERMINAL_PHASES = frozenset({OrchestratorPhase.done, OrchestratorPhase.iteration_limit, OrchestratorPhase.cancelled})


@dataclass(frozen=True)
class OrchestratorDeps:
    """Dependency bundle for ``AgentOrchestrator``.

    Attributes
    ----------
    store:
        Used to load the schema snapshot for the system prompt.
    model:
        The language-model client.
    tools:
        Executor for tool calls; its registry provides the tool catalog.
    """

    store: PlatformStore
    model: ModelClient
    tools: ToolExecutor


class _LoopState(TypedDict):
    """Mutable LangGraph state for a single chat request.

    Required keys:

    - ``app_id`` / ``user_id``: tenancy context for tool calls.
    - ``system_prompt``: built once per request from the schema snapshot.
    - ``history``: the running conversation sent to the model.
    - ``iteration``: number of model round trips performed.
    - ``phase``: current ``OrchestratorPhase`` value.

    Optional keys:

    - ``pending``: tool-use units queued by the last model turn.
    - ``assistant_turn``: the last assistant turn, appended to history once its
      tools have run.
    """

    app_id: Required[str]
    user_id: Required[str]
    system_prompt: Required[str]
    history: Required[List[ConversationTurn]]
    iteration: Required[int]
    phase: Required[str]
    pending: NotRequired[List[ToolUseUnit]]
    assistant_turn: NotRequired[ConversationTurn]
