from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import httpx
import pytest
import pytest_asyncio

from appweaver_ai.agent_core.schemas import (
    ConversationTurn,
    ModelTurn,
    StopReason,
    TextUnit,
    ToolUseUnit,
)
from appweaver_ai.agent_core.tools import ToolSpec
from appweaver_ai.automation.sandbox import ScriptExecution
from appweaver_ai.core.database import (
    PlatformStore,
    build_sql_store,
    create_all,
    create_engine,
    create_sessionmaker,
)
from appweaver_ai.core.models import App, Automation, RecordEvent


class ScriptedModelClient:
    """
    ``ModelClient`` double replaying a fixed list of turns.

    Each entry is a ``ModelTurn`` or an exception to raise. Once the script
    is exhausted every further call returns ``fallback`` (an end-of-turn text
    reply unless overridden).
    """

    def __init__(self, turns: Sequence[Union[ModelTurn, BaseException]] = (), fallback: Optional[ModelTurn] = None):
        self._turns = list(turns)
        self._fallback = fallback or ModelTurn(content=[TextUnit(text="Done.")], stop_reason=StopReason.end_turn)
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        *,
        system_prompt: str,
        tools: Sequence[ToolSpec],
        messages: List[ConversationTurn],
    ) -> ModelTurn:
        self.calls.append({"system_prompt": system_prompt, "tools": list(tools), "messages": list(messages)})
        if self._turns:
            item = self._turns.pop(0)
        else:
            item = self._fallback
        if isinstance(item, BaseException):
            raise item
        return item


def tool_turn(*uses: ToolUseUnit, text: Optional[str] = None) -> ModelTurn:
    content: List[Any] = [TextUnit(text=text)] if text else []
    content.extend(uses)
    return ModelTurn(content=content, stop_reason=StopReason.tool_use)


class RecordingRunner:
    """``SandboxRunner`` double recording invocations; raises for ids in ``fail_for``."""

    def __init__(self, fail_for: Iterable[str] = ()) -> None:
        self.fail_for = set(fail_for)
        self.calls: List[tuple] = []

    async def run_automation(self, automation: Automation, event: Optional[RecordEvent]) -> str:
        self.calls.append((automation, event))
        if automation.id in self.fail_for:
            raise RuntimeError(f"runner exploded for {automation.id}")
        return f"run-{automation.id}"


class FakeSandbox:
    """``ScriptSandbox`` double returning a canned execution or raising."""

    def __init__(self, result: Union[ScriptExecution, BaseException, Callable[[str], ScriptExecution]]) -> None:
        self._result = result
        self.scripts: List[str] = []
        self.timeouts: List[float] = []

    async def execute(self, code: str, *, timeout: float = 30.0) -> ScriptExecution:
        self.scripts.append(code)
        self.timeouts.append(timeout)
        if isinstance(self._result, BaseException):
            raise self._result
        if callable(self._result):
            return self._result(code)
        return self._result


@pytest.fixture
def scripted_model_cls():
    return ScriptedModelClient


@pytest.fixture
def make_tool_turn():
    return tool_turn


@pytest.fixture
def recording_runner_cls():
    return RecordingRunner


@pytest.fixture
def fake_sandbox_cls():
    return FakeSandbox


@pytest_asyncio.fixture
async def store(tmp_path: Path):
    """A ``PlatformStore`` on a fresh file-backed SQLite database."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'appweaver.db'}")
    await create_all(engine)
    try:
        yield build_sql_store(session_factory=create_sessionmaker(engine))
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app(store: PlatformStore) -> App:
    return await store.apps.create(App(user_id="user-1", name="CRM"))


@pytest_asyncio.fixture
async def other_app(store: PlatformStore) -> App:
    return await store.apps.create(App(user_id="user-2", name="Inventory"))


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
