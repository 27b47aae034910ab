from __future__ import annotations

from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from appweaver_ai.automation.sandbox import ScriptExecution
from appweaver_ai.server.core.config import Settings
from appweaver_ai.server.main import create_app
from appweaver_ai.server.services.container import PlatformContainer


@pytest_asyncio.fixture
async def platform(store, scripted_model_cls, fake_sandbox_cls) -> AsyncGenerator[PlatformContainer, None]:
    """Container wired to the SQLite store, a scripted model and a canned sandbox."""
    container = PlatformContainer.build(
        store=store,
        model=scripted_model_cls(),
        sandbox=fake_sandbox_cls(ScriptExecution(stdout="__LOG__:ran\n__ACTIONS__:[]\n")),
    )
    await container.start()
    yield container
    await container.close()


@pytest_asyncio.fixture(name="client")
async def client_fixture(platform: PlatformContainer) -> AsyncGenerator[AsyncClient, None]:
    web_app = create_app(container=platform, settings=Settings())
    async with AsyncClient(transport=ASGITransport(app=web_app), base_url="http://localhost") as client:
        yield client
