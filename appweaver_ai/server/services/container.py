"""
Platform service container.

Owns every long-lived collaborator of the server process: the database engine
and store, the event bus and its task supervisors, the automation runner and
dispatcher, the tool executor and the chat orchestrator. Exactly one instance
exists per application; routes reach it through ``request.app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from appweaver_ai.agent_core import build_orchestrator, build_tool_executor
from appweaver_ai.agent_core.llm import ModelClient, PydanticAIModelClient, build_model
from appweaver_ai.agent_core.runtime import AgentOrchestrator
from appweaver_ai.agent_core.tools import ToolExecutor
from appweaver_ai.automation import (
    AutomationDispatcher,
    E2BSandbox,
    SandboxAutomationRunner,
    ScriptSandbox,
    SubprocessSandbox,
)
from appweaver_ai.core.database import (
    PlatformStore,
    build_sql_store,
    create_all,
    create_engine,
    create_sessionmaker,
)
from appweaver_ai.core.logging_config import get_logger
from appweaver_ai.core.tasks import TaskSupervisor
from appweaver_ai.events import EventBus

from ..core.config import SandboxConfig, Settings

logger = get_logger(__name__)


def build_sandbox(config: SandboxConfig) -> Optional[ScriptSandbox]:
    """Select the script sandbox; ``None`` makes every automation run fail."""
    if not config.enabled:
        logger.warning("Automation sandbox disabled; automation runs will be recorded as errors")
        return None
    if config.provider == "subprocess":
        logger.warning("Automation scripts run in a local subprocess; use the e2b provider in production")
        return SubprocessSandbox(config.python_executable)
    if not config.e2b_api_key:
        logger.warning("E2B_API_KEY not configured; automation runs will be recorded as errors")
        return None
    return E2BSandbox(config.e2b_api_key)


@dataclass
class PlatformContainer:
    engine: Optional[AsyncEngine]
    store: PlatformStore
    bus: EventBus
    runner: SandboxAutomationRunner
    dispatcher: AutomationDispatcher
    tools: ToolExecutor
    orchestrator: AgentOrchestrator
    chat_supervisor: TaskSupervisor
    automation_supervisor: TaskSupervisor
    bus_supervisor: TaskSupervisor
    started: bool = False

    @classmethod
    def build(
        cls,
        *,
        store: PlatformStore,
        model: ModelClient,
        sandbox: Optional[ScriptSandbox] = None,
        engine: Optional[AsyncEngine] = None,
        max_iterations: int = 25,
        sandbox_timeout: float = 30.0,
    ) -> "PlatformContainer":
        """
        Wire the platform around an existing store and model client.

        Args:
            store: Repositories for Apps, Types, Fields, Records and Automations.
            model: Language-model client used by the orchestrator.
            sandbox: Script sandbox for automations; ``None`` makes every run fail.
            engine: Engine backing ``store``, disposed on ``close``.
            max_iterations: Model round trips allowed per chat request.
            sandbox_timeout: Time budget of one automation script.
        """
        bus_supervisor = TaskSupervisor("event_bus")
        bus = EventBus(supervisor=bus_supervisor)
        publish = bus.publisher()
        automation_supervisor = TaskSupervisor("automations")
        runner = SandboxAutomationRunner(
            store=store,
            publish=publish,
            sandbox=sandbox,
            timeout_seconds=sandbox_timeout,
        )
        dispatcher = AutomationDispatcher(
            automations=store.automations,
            runner=runner,
            supervisor=automation_supervisor,
        )
        tools = build_tool_executor(store=store, publish=publish)
        chat_supervisor = TaskSupervisor("chat")
        orchestrator = build_orchestrator(
            store=store,
            model=model,
            tools=tools,
            max_iterations=max_iterations,
            supervisor=chat_supervisor,
        )
        return cls(
            engine=engine,
            store=store,
            bus=bus,
            runner=runner,
            dispatcher=dispatcher,
            tools=tools,
            orchestrator=orchestrator,
            chat_supervisor=chat_supervisor,
            automation_supervisor=automation_supervisor,
            bus_supervisor=bus_supervisor,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlatformContainer":
        """Build the production container from environment settings."""
        engine = create_engine(settings.database_url)
        store = build_sql_store(session_factory=create_sessionmaker(engine))
        anthropic = settings.anthropic
        agent = settings.agent
        model = PydanticAIModelClient(
            build_model(anthropic.model, anthropic.api_key),
            max_tokens=agent.max_tokens,
        )
        return cls.build(
            store=store,
            model=model,
            sandbox=build_sandbox(settings.sandbox),
            engine=engine,
            max_iterations=agent.max_iterations,
            sandbox_timeout=settings.sandbox.timeout_seconds,
        )

    async def start(self) -> None:
        """Create tables when an engine is owned and subscribe the dispatcher."""
        if self.started:
            return
        if self.engine is not None:
            await create_all(self.engine)
            logger.info("Database schema ensured")
        self.dispatcher.start(self.bus)
        self.started = True

    async def close(self) -> None:
        """Stop dispatching, cancel in-flight background work and dispose the engine."""
        self.dispatcher.stop()
        await self.bus_supervisor.cancel_all()
        await self.chat_supervisor.cancel_all()
        await self.automation_supervisor.cancel_all()
        if self.engine is not None:
            await self.engine.dispose()
        self.started = False
        logger.info("Platform container closed")

    async def wait_idle(self) -> None:
        """Wait until published events and the automation runs they started have settled."""
        await self.bus.wait_idle()
        await self.dispatcher.wait_idle()
