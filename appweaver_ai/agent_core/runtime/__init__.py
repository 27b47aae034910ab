"""LangGraph runtime driving the chat tool loop."""

from .engine import AgentOrchestrator
from .models import MAX_ITERATIONS, OrchestratorDeps, OrchestratorPhase

__all__ = ["AgentOrchestrator", "MAX_ITERATIONS", "OrchestratorDeps", "OrchestratorPhase"]
