"""Schema-building tools exposed to the language model."""

from .base import ToolContext, ToolDeps, ToolHandler, ToolResult, ToolSpec
from .executor import ToolExecutor
from .registry import ToolRegistry, build_default_registry

__all__ = [
    "ToolContext",
    "ToolDeps",
    "ToolExecutor",
    "ToolHandler",
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "build_default_registry",
]
