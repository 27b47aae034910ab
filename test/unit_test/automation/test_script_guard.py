from __future__ import annotations

import pytest

from appweaver_ai.automation import check_script


@pytest.mark.parametrize(
    "code",
    [
        "log('hi')",
        "import json\nfrom datetime import datetime\nlog(json.dumps({'at': str(datetime.now())}))",
        "total = sum(v for v in ctx['record'].values() if isinstance(v, (int, float)))\nlog(total)",
        "if pd is not None:\n    frame = pd.DataFrame([ctx['record']])\n    log(len(frame))",
        "create_record(ctx['type']['id'], {field_map['Name']: 'Ada'})",
    ],
)
def test_plain_automation_code_passes(code: str) -> None:
    assert check_script(code) == []


@pytest.mark.parametrize(
    "code,fragment",
    [
        ("import os\nlog(os.environ.get('ANTHROPIC_API_KEY'))", "Import of 'os'"),
        ("from subprocess import run", "Import from 'subprocess'"),
        ("import socket", "Import of 'socket'"),
        ("open('/etc/passwd').read()", "builtin 'open'"),
        ("__import__('os')", "builtin '__import__'"),
        ("().__class__.__bases__", "Dunder attribute"),
        ("__builtins__", "Dunder name"),
        ("pd.read_csv('/etc/passwd')", "Attribute 'read_csv'"),
        ("def f():\n    global ctx", "global/nonlocal"),
        ("log(", "Syntax error"),
    ],
)
def test_escaping_code_is_rejected(code: str, fragment: str) -> None:
    violations = check_script(code)

    assert any(fragment in v for v in violations), violations
