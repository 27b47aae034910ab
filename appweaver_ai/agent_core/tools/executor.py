from __future__ import annotations

"""Tool executor.

``ToolExecutor.execute`` is the single entry point the orchestrator uses to
run a tool. It never raises: every failure is converted into a
``ToolResult(success=False, error=...)`` so one bad tool call never aborts the
conversation.

Failure mapping
---------------

- unknown tool name          -> ``"Unknown tool: <name>"``
- ``ToolValidationError``    -> message naming the offending arguments
- ``NotFoundError``          -> its message (``"Type not found"``, ...)
- anything else              -> logged with traceback, reported by message
"""

from typing import Any

from ...core.errors import AppWeaverError
from ...core.logging_config import get_logger
from .base import ToolContext, ToolDeps, ToolResult
from .registry import ToolRegistry

logger = get_logger(__name__)


class ToolExecutor:
    """Validate and run tools by name inside a tenancy context."""

    def __init__(self, *, registry: ToolRegistry, deps: ToolDeps) -> None:
        self._registry = registry
        self._deps = deps

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def execute(self, name: str, raw_input: Any, *, app_id: str, user_id: str) -> ToolResult:
        """
        Execute tool ``name`` with untrusted ``raw_input``.

        Args:
            name: Tool name requested by the model.
            raw_input: Decoded JSON arguments.
            app_id: App the conversation is bound to.
            user_id: The caller.

        Returns:
            The tool outcome; never raises.
        """
        if not self._registry.has(name):
            logger.warning("Model requested unknown tool %s", name)
            return ToolResult.fail(f"Unknown tool: {name}")

        handler = self._registry.get(name)
        ctx = ToolContext(app_id=app_id, user_id=user_id, deps=self._deps)
        try:
            args = handler.validate(raw_input)
            result = await handler.execute(args, ctx)
        except AppWeaverError as exc:
            logger.info("Tool %s failed in app %s: %s", name, app_id, exc)
            return ToolResult.fail(str(exc))
        except Exception as exc:
            logger.error("Tool %s raised in app %s: %s", name, app_id, exc, exc_info=True)
            return ToolResult.fail(str(exc) or "Tool execution failed")

        logger.debug("Tool %s succeeded in app %s", name, app_id)
        return ToolResult.ok(result)
