"""Record-event driven automations: dispatcher, sandbox runner and sandboxes."""

from .dispatcher import AutomationDispatcher
from .guard import check_script
from .runner import SandboxAutomationRunner, SandboxRunner
from .sandbox import E2BSandbox, ScriptExecution, ScriptSandbox, SubprocessSandbox

__all__ = [
    "AutomationDispatcher",
    "E2BSandbox",
    "SandboxAutomationRunner",
    "SandboxRunner",
    "ScriptExecution",
    "ScriptSandbox",
    "SubprocessSandbox",
    "check_script",
]
