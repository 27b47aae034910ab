from __future__ import annotations

"""Convenience factories for wiring the agent core.

Small helpers to build the default tool executor and the orchestrator, keeping
application wiring and tests concise while still allowing a custom registry
or model client to be injected.
"""

from typing import Optional

from ..core.database.repositories import PlatformStore
from ..core.tasks import TaskSupervisor
from ..events import RecordEventPublisher
from .llm.base import ModelClient
from .runtime import MAX_ITERATIONS, AgentOrchestrator, OrchestratorDeps
from .tools import ToolDeps, ToolExecutor, ToolRegistry, build_default_registry


def build_tool_executor(
    *,
    store: PlatformStore,
    publish: RecordEventPublisher,
    registry: Optional[ToolRegistry] = None,
) -> ToolExecutor:
    """Construct a ``ToolExecutor`` over the default registry unless one is given."""
    return ToolExecutor(
        registry=registry or build_default_registry(),
        deps=ToolDeps(store=store, publish=publish),
    )


def build_orchestrator(
    *,
    store: PlatformStore,
    model: ModelClient,
    tools: ToolExecutor,
    max_iterations: int = MAX_ITERATIONS,
    supervisor: Optional[TaskSupervisor] = None,
) -> AgentOrchestrator:
    """Construct an ``AgentOrchestrator`` from its collaborators."""
    return AgentOrchestrator(
        deps=OrchestratorDeps(store=store, model=model, tools=tools),
        max_iterations=max_iterations,
        supervisor=supervisor,
    )
