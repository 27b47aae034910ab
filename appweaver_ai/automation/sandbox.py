"""Script sandboxes that execute automation code.

The runner only depends on the ``ScriptSandbox`` protocol. Two
implementations ship with the package:

- ``E2BSandbox`` runs every script in a fresh remote E2B code-interpreter
  sandbox and is the production default.
- ``SubprocessSandbox`` runs the script in a local, isolated Python
  interpreter for development and tests. The child gets a scratch working
  directory and a minimal environment, never the server's own variables.
"""

from __future__ import annotations

import asyncio
import os
import sys
import tempfile
import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from e2b_code_interpreter import AsyncSandbox

from ..core.errors import SandboxTimeoutError
from ..core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class ExecutionError:
    """Uncaught exception raised by the script, e.g. ``NameError: name 'x' is not defined``."""

    name: str
    value: str

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"


@dataclass(frozen=True)
class ScriptExecution:
    """Captured output of one script execution."""

    stdout: str = ""
    stderr: str = ""
    error: Optional[ExecutionError] = None


class ScriptSandbox(Protocol):
    """Protocol for sandbox implementations."""

    async def execute(self, code: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> ScriptExecution:
        """
        Run ``code`` and capture its output.

        Raises:
            SandboxTimeoutError: If the script exceeds ``timeout`` seconds.
        """
        ...


def parse_execution_error(stderr: str, returncode: Optional[int]) -> ExecutionError:
    """Derive the exception name/value from the last traceback line in ``stderr``."""
    lines = [line.strip() for line in stderr.splitlines() if line.strip()]
    if not lines:
        return ExecutionError(name="ExitError", value=f"process exited with code {returncode}")
    last = lines[-1]
    name, sep, value = last.partition(":")
    if sep and name and " " not in name:
        return ExecutionError(name=name, value=value.strip())
    return ExecutionError(name="Error", value=last)


def child_environment(workdir: str) -> Dict[str, str]:
    """Minimal environment for a script process: no host secrets are inherited."""
    return {
        "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
        "HOME": workdir,
        "TMPDIR": workdir,
        "LANG": "C.UTF-8",
    }


class SubprocessSandbox:
    """Run scripts with ``python -I`` in a child process, fed through stdin."""

    def __init__(self, python_executable: Optional[str] = None) -> None:
        self._python = python_executable or sys.executable

    async def execute(self, code: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> ScriptExecution:
        start_time = time.time()
        with tempfile.TemporaryDirectory(prefix="appweaver_script_") as workdir:
            process = await asyncio.create_subprocess_exec(
                self._python,
                "-I",
                "-",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=workdir,
                env=child_environment(workdir),
            )
            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(input=code.encode("utf-8")),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                error_msg = f"Script execution timeout after {timeout} seconds"
                logger.error(error_msg)
                raise SandboxTimeoutError(error_msg) from None

        stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""
        duration = time.time() - start_time
        logger.debug(
            "Script completed with exit code %s (duration: %.2fs, stdout: %d chars, stderr: %d chars)",
            process.returncode,
            duration,
            len(stdout),
            len(stderr),
        )

        error = None if process.returncode == 0 else parse_execution_error(stderr, process.returncode)
        return ScriptExecution(stdout=stdout, stderr=stderr, error=error)


class E2BSandbox:
    """
    Run scripts in a remote E2B code-interpreter sandbox.

    A fresh sandbox is created for every execution and killed afterwards, so
    no state leaks between automation runs.
    """

    def __init__(self, api_key: str, *, template: Optional[str] = None) -> None:
        self._api_key = api_key
        self._template = template

    async def execute(self, code: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> ScriptExecution:
        start_time = time.time()
        sandbox = await AsyncSandbox.create(template=self._template, api_key=self._api_key)
        try:
            try:
                execution = await asyncio.wait_for(sandbox.run_code(code), timeout=timeout)
            except asyncio.TimeoutError:
                error_msg = f"Script execution timeout after {timeout} seconds"
                logger.error(error_msg)
                raise SandboxTimeoutError(error_msg) from None
        finally:
            await sandbox.kill()

        stdout = "".join(execution.logs.stdout)
        stderr = "".join(execution.logs.stderr)
        error = None
        if execution.error is not None:
            error = ExecutionError(name=execution.error.name, value=execution.error.value)
            if execution.error.traceback:
                stderr = f"{stderr}{execution.error.traceback}"
        logger.debug(
            "E2B script completed (duration: %.2fs, stdout: %d chars, error: %s)",
            time.time() - start_time,
            len(stdout),
            error,
        )
        return ScriptExecution(stdout=stdout, stderr=stderr, error=error)
