"""Agent core: tools, schema prompt, model client and the orchestrator runtime."""

from .factory import build_orchestrator, build_tool_executor
from .runtime import MAX_ITERATIONS, AgentOrchestrator, OrchestratorDeps

__all__ = [
    "AgentOrchestrator",
    "MAX_ITERATIONS",
    "OrchestratorDeps",
    "build_orchestrator",
    "build_tool_executor",
]
