"""Static checks applied to automation code before it reaches a sandbox.

Automation scripts are written by users or by the chat agent. They only need
the helpers of the bootstrap plus plain data-manipulation modules, so
everything that reaches the process, the file system, the network or the
interpreter internals is rejected up front.
"""

from __future__ import annotations

import ast
from typing import List

ALLOWED_IMPORTS = frozenset({
    "pandas", "numpy",
    "json", "datetime", "zoneinfo", "time", "calendar",
    "math", "statistics", "decimal", "fractions", "random",
    "re", "string", "textwrap", "uuid",
    "collections", "itertools", "functools", "operator", "copy",
    "typing", "dataclasses", "enum",
})

BLOCKED_BUILTINS = frozenset({
    "exec", "eval", "compile", "__import__",
    "globals", "locals", "vars",
    "breakpoint", "exit", "quit", "input",
    "getattr", "setattr", "delattr",
    "open", "memoryview",
})

BLOCKED_ATTRS = frozenset({
    # process and environment
    "system", "popen", "spawn", "fork", "kill",
    "environ", "getenv", "putenv", "unsetenv",
    "run", "call", "check_output", "check_call", "Popen",
    # file I/O
    "read_csv", "read_excel", "read_json", "read_pickle", "read_parquet", "read_sql",
    "to_pickle", "to_csv", "to_excel", "to_json", "to_parquet", "to_sql",
    "loadtxt", "savetxt", "genfromtxt", "fromfile", "tofile", "memmap",
})


def check_script(code: str) -> List[str]:
    """
    Validate automation code using AST analysis.

    Args:
        code: The user's automation code, without the bootstrap.

    Returns:
        Violation descriptions; an empty list means the code may run.
    """
    try:
        tree = ast.parse(code)
    except SyntaxError as e:
        return [f"Syntax error: {e}"]

    violations: List[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                top_level = alias.name.split(".")[0]
                if top_level not in ALLOWED_IMPORTS:
                    violations.append(f"Import of '{alias.name}' is not allowed")

        elif isinstance(node, ast.ImportFrom):
            top_level = (node.module or "").split(".")[0]
            if node.level or top_level not in ALLOWED_IMPORTS:
                violations.append(f"Import from '{node.module or '.'}' is not allowed")

        elif isinstance(node, ast.Name):
            if node.id in BLOCKED_BUILTINS:
                violations.append(f"Use of builtin '{node.id}' is not allowed")
            elif node.id.startswith("__") and node.id.endswith("__"):
                violations.append(f"Dunder name '{node.id}' is not allowed")

        elif isinstance(node, ast.Attribute):
            if node.attr.startswith("__") and node.attr.endswith("__"):
                violations.append(f"Dunder attribute access '{node.attr}' is not allowed")
            elif node.attr in BLOCKED_ATTRS:
                violations.append(f"Attribute '{node.attr}' is not allowed (system access / I/O)")

        elif isinstance(node, (ast.Global, ast.Nonlocal)):
            violations.append("global/nonlocal statements are not allowed")

    return violations
