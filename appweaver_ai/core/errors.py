"""Error taxonomy shared by the tool layer, the orchestrator and automations.

Errors are split by how far they are allowed to travel:

- ``ToolValidationError`` and ``NotFoundError`` are *local*: the tool executor
  turns them into a failed tool result and the conversation continues.
- ``UpstreamError`` wraps language-model provider failures; it aborts the
  current chat request (one ``error`` event, then ``message_done``).
- ``AutomationError`` and ``SandboxTimeoutError`` are confined to a single
  automation invocation and never reach the publisher of the triggering event.
"""

from __future__ import annotations


class AppWeaverError(Exception):
    """Base class for all errors raised by this package."""


class ToolValidationError(AppWeaverError):
    """Tool arguments are missing or malformed."""

    def __init__(self, message: str, *, tool_name: str | None = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class NotFoundError(AppWeaverError):
    """The referenced entity does not exist inside the caller's App."""


class UpstreamError(AppWeaverError):
    """The language-model provider failed or returned an unusable response."""


class AutomationError(AppWeaverError):
    """An automation invocation failed."""

    def __init__(self, message: str, *, automation_id: str | None = None) -> None:
        super().__init__(message)
        self.automation_id = automation_id


class SandboxTimeoutError(AutomationError):
    """The sandboxed script did not finish within its time budget."""
