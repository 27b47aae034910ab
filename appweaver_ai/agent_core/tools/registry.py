from __future__ import annotations

"""Tool registry.

The registry maps a tool name to its handler descriptor. The orchestrator
advertises ``catalog()`` to the model and the executor resolves requested
names through ``get``. Adding a tool means registering one more handler.
"""

from typing import Dict, List

from .base import ToolHandler, ToolSpec


class ToolRegistry:
    """
    In-memory mapping of tool names to handlers.

    Notes:
        - ``register`` overwrites any existing mapping for the tool name.
        - ``get`` will raise ``KeyError`` if the tool is missing.
    """

    def __init__(self) -> None:
        """Initialize an empty tool registry."""
        self._tools: Dict[str, ToolHandler] = {}

    def register(self, handler: ToolHandler) -> None:
        """
        Register a tool handler.

        Args:
            handler: The handler instance to register. It must expose a ``name`` attribute.
        """
        self._tools[handler.name] = handler

    def get(self, name: str) -> ToolHandler:
        """
        Retrieve a registered handler by name.

        Raises:
            KeyError: If no tool is registered with the given name.
        """
        return self._tools[name]

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> List[str]:
        return list(self._tools)

    def catalog(self) -> List[ToolSpec]:
        """Tool specs in registration order, as sent to the model."""
        return [handler.to_spec() for handler in self._tools.values()]


def build_default_registry() -> ToolRegistry:
    """Create a registry holding every built-in tool."""
    from .builtin import BUILTIN_TOOLS

    registry = ToolRegistry()
    for tool_cls in BUILTIN_TOOLS:
        registry.register(tool_cls())
    return registry
