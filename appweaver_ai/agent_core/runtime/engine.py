from __future__ import annotations

"""LangGraph agent orchestrator.

``AgentOrchestrator`` turns one chat request into a bounded loop of model
round trips and tool executions, streaming every step to the caller.

Execution model
---------------

- ``start`` loads the App's schema and builds the system prompt.
- ``call_model`` sends the running conversation plus the tool catalog and
  streams the returned units: text as ``text_delta``, tool requests as
  ``tool_use_start``. A turn with no tool requests, or one the model marks as
  ``end_turn``, finishes the loop.
- ``execute_tools`` runs the queued tools strictly one after another, emits
  each ``tool_result`` as soon as it is known, then appends the assistant turn
  and a user turn of tool results to the conversation.
- The loop stops after ``max_iterations`` model calls (``ITERATION_LIMIT``,
  not an error).

Streaming and cancellation
--------------------------

The graph runs in a supervised background task that pushes events into a
queue; ``stream`` yields them in order. When the consumer goes away the
request is flagged cancelled: the tool currently executing completes (its
mutation stays committed), the rest of the batch is skipped, and no further
model call is made.

Every request ends with exactly one ``message_done``, preceded by a single
``error`` event when anything raised.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from ...core.logging_config import get_logger
from ...core.tasks import TaskSupervisor
from ..prompts import build_system_prompt, load_schema_snapshot
from ..schemas.conversation import (
    ConversationTurn,
    StopReason,
    TextUnit,
    ToolResultUnit,
    ToolUseUnit,
)
from ..schemas.stream import StreamEmitter, StreamEvent
from ..tools.base import ToolSpec
from .models import (
    MAX_ITERATIONS,
    TERMINAL_PHASES,
    OrchestratorDeps,
    OrchestratorPhase,
    _LoopState,
)

logger = get_logger(__name__)


@dataclass
class _RequestRun:
    """Per-request objects that must not live in graph state."""

    emitter: StreamEmitter
    cancelled: asyncio.Event
    catalog: Sequence[ToolSpec] = ()


def _request_run(config: RunnableConfig) -> _RequestRun:
    return config["configurable"]["request_run"]


class AgentOrchestrator:
    """Bounded, streaming, tool-calling loop over a LangGraph state machine."""

    def __init__(
        self,
        *,
        deps: OrchestratorDeps,
        max_iterations: int = MAX_ITERATIONS,
        supervisor: Optional[TaskSupervisor] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            deps: Store, model client and tool executor.
            max_iterations: Upper bound on model round trips per request.
            supervisor: Owner of the background tasks driving each request.
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._deps = deps
        self._max_iterations = max_iterations
        self._supervisor = supervisor or TaskSupervisor("orchestrator")
        self._graph = self._build_graph()

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_LoopState)
        g.add_node("start", self._node_start)
        g.add_node("call_model", self._node_call_model)
        g.add_node("execute_tools", self._node_execute_tools)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("start")
        g.add_edge("start", "call_model")
        g.add_conditional_edges(
            "call_model",
            self._route_after_model,
            {
                "tools": "execute_tools",
                "finish": "finish",
            },
        )
        g.add_edge("execute_tools", "call_model")
        g.add_edge("finish", END)
        return g.compile()

    async def stream(
        self,
        *,
        app_id: str,
        user_id: str,
        messages: List[ConversationTurn],
    ) -> AsyncIterator[StreamEvent]:
        """
        Run one chat request and yield its events in order.

        Args:
            app_id: App the conversation is bound to (ownership already checked).
            user_id: The caller.
            messages: The client-supplied conversation.

        Yields:
            ``StreamEvent`` items, ending with ``message_done``.
        """
        queue: asyncio.Queue[Optional[StreamEvent]] = asyncio.Queue()
        run = _RequestRun(emitter=StreamEmitter(queue.put_nowait), cancelled=asyncio.Event())
        self._supervisor.spawn(self._drive(app_id, user_id, list(messages), run, queue), name=f"chat:{app_id}")
        try:
            while True:
                event = await queue.get()
                if event is None:
                    return
                yield event
        finally:
            if not run.emitter.done:
                logger.info("Chat stream for app %s closed early; cancelling further model calls", app_id)
            run.cancelled.set()

    async def _drive(
        self,
        app_id: str,
        user_id: str,
        messages: List[ConversationTurn],
        run: _RequestRun,
        queue: asyncio.Queue[Optional[StreamEvent]],
    ) -> None:
        state: _LoopState = {
            "app_id": app_id,
            "user_id": user_id,
            "system_prompt": "",
            "history": messages,
            "iteration": 0,
            "phase": OrchestratorPhase.awaiting_model.value,
            "pending": [],
        }
        config = {
            "configurable": {"request_run": run},
            # two super-steps per iteration plus start/finish; the iteration
            # bound always triggers first
            "recursion_limit": 2 * self._max_iterations + 10,
        }
        try:
            await self._graph.ainvoke(state, config=config)
        except Exception as exc:
            logger.error("Chat request for app %s failed: %s", app_id, exc, exc_info=True)
            run.emitter.error(str(exc) or type(exc).__name__)
        finally:
            run.emitter.message_done()
            queue.put_nowait(None)

    async def _node_start(self, state: _LoopState, config: RunnableConfig) -> Dict[str, Any]:
        run = _request_run(config)
        snapshot = await load_schema_snapshot(self._deps.store, state["app_id"])
        run.catalog = self._deps.tools.registry.catalog()
        logger.debug(
            "Starting chat loop for app %s: %d type(s), %d tool(s)",
            state["app_id"],
            len(snapshot.types),
            len(run.catalog),
        )
        return {"system_prompt": build_system_prompt(snapshot)}

    async def _node_call_model(self, state: _LoopState, config: RunnableConfig) -> Dict[str, Any]:
        run = _request_run(config)
        if run.cancelled.is_set():
            return {"phase": OrchestratorPhase.cancelled.value, "pending": []}
        if state["iteration"] >= self._max_iterations:
            logger.warning("Chat loop for app %s hit the %d iteration limit", state["app_id"], self._max_iterations)
            return {"phase": OrchestratorPhase.iteration_limit.value, "pending": []}

        turn = await self._deps.model.complete(
            system_prompt=state["system_prompt"],
            tools=run.catalog,
            messages=state["history"],
        )
        iteration = state["iteration"] + 1

        for unit in turn.content:
            if isinstance(unit, TextUnit):
                run.emitter.text_delta(unit.text)
            elif isinstance(unit, ToolUseUnit):
                run.emitter.tool_use_start(unit.id, unit.name, unit.input)

        pending = turn.tool_uses
        if not pending or turn.stop_reason == StopReason.end_turn:
            return {"iteration": iteration, "phase": OrchestratorPhase.done.value, "pending": []}
        return {
            "iteration": iteration,
            "phase": OrchestratorPhase.executing_tools.value,
            "pending": pending,
            "assistant_turn": ConversationTurn(role="assistant", content=list(turn.content)),
        }

    async def _node_execute_tools(self, state: _LoopState, config: RunnableConfig) -> Dict[str, Any]:
        run = _request_run(config)
        results: List[ToolResultUnit] = []
        for tool_use in state.get("pending", []):
            if run.cancelled.is_set():
                logger.info("Skipping remaining tool calls for app %s after client disconnect", state["app_id"])
                break
            result = await self._deps.tools.execute(
                tool_use.name,
                tool_use.input,
                app_id=state["app_id"],
                user_id=state["user_id"],
            )
            payload = result.to_payload()
            run.emitter.tool_result(tool_use.id, tool_use.name, payload)
            results.append(
                ToolResultUnit(
                    tool_use_id=tool_use.id,
                    name=tool_use.name,
                    content=json.dumps(payload, default=str),
                )
            )

        history = [
            *state["history"],
            state["assistant_turn"],
            ConversationTurn(role="user", content=results),
        ]
        return {"history": history, "pending": [], "phase": OrchestratorPhase.awaiting_model.value}

    async def _node_finish(self, state: _LoopState, config: RunnableConfig) -> Dict[str, Any]:
        logger.info(
            "Chat loop for app %s finished: phase=%s iterations=%d",
            state["app_id"],
            state["phase"],
            state["iteration"],
        )
        return {"phase": state["phase"]}

    def _route_after_model(self, state: _LoopState) -> str:
        if OrchestratorPhase(state["phase"]) in TERMINAL_PHASES:
            return "finish"
        return "tools"
