from __future__ import annotations

import logging

import pytest

from appweaver_ai.agent_core import build_tool_executor
from appweaver_ai.automation import AutomationDispatcher, SandboxAutomationRunner
from appweaver_ai.automation.sandbox import ScriptExecution
from appweaver_ai.core.models import (
    Automation,
    AutomationRunStatus,
    AutomationTrigger,
    EntityType,
    RecordEvent,
    RecordEventType,
)
from appweaver_ai.events import RECORD_EVENT_TOPIC, EventBus


@pytest.fixture
async def contact(store, app) -> EntityType:
    return await store.types.create(EntityType(app_id=app.id, name="Contact"))


async def _automation(store, app, contact, name: str, **overrides) -> Automation:
    values = dict(
        app_id=app.id,
        type_id=contact.id,
        name=name,
        trigger=AutomationTrigger.record_created,
        code="log('x')",
        created_by=app.user_id,
    )
    values.update(overrides)
    return await store.automations.create(Automation(**values))


def _event(app, contact, **overrides) -> RecordEvent:
    values = dict(
        type=RecordEventType.record_created,
        app_id=app.id,
        type_id=contact.id,
        record_id="rec-1",
        record={"f": 1},
    )
    values.update(overrides)
    return RecordEvent(**values)


class TestAutomationDispatcher:
    async def test_each_matching_automation_runs_once(self, store, app, contact, recording_runner_cls) -> None:
        first = await _automation(store, app, contact, "first")
        second = await _automation(store, app, contact, "second")
        await _automation(store, app, contact, "disabled", enabled=False)
        await _automation(store, app, contact, "on update", trigger=AutomationTrigger.record_updated)
        runner = recording_runner_cls()
        dispatcher = AutomationDispatcher(automations=store.automations, runner=runner)

        started = await dispatcher.handle_event(_event(app, contact))
        await dispatcher.wait_idle()

        assert started == 2
        assert sorted(a.id for a, _ in runner.calls) == sorted([first.id, second.id])
        assert all(event.record_id == "rec-1" for _, event in runner.calls)

    async def test_automation_originated_events_are_ignored(self, store, app, contact, recording_runner_cls) -> None:
        await _automation(store, app, contact, "first")
        runner = recording_runner_cls()
        dispatcher = AutomationDispatcher(automations=store.automations, runner=runner)

        started = await dispatcher.handle_event(_event(app, contact, triggered_by_automation=True))
        await dispatcher.wait_idle()

        assert started == 0
        assert runner.calls == []

    async def test_one_failing_run_does_not_stop_others(
        self, store, app, contact, recording_runner_cls, caplog: pytest.LogCaptureFixture
    ) -> None:
        failing = await _automation(store, app, contact, "A")
        healthy = await _automation(store, app, contact, "B")
        runner = recording_runner_cls(fail_for=[failing.id])
        dispatcher = AutomationDispatcher(automations=store.automations, runner=runner)

        with caplog.at_level(logging.ERROR, logger="appweaver_ai.automation.dispatcher"):
            await dispatcher.handle_event(_event(app, contact))
            await dispatcher.wait_idle()

        assert {a.id for a, _ in runner.calls} == {failing.id, healthy.id}
        assert any(failing.id in r.getMessage() for r in caplog.records)

    async def test_lookup_failure_is_contained(self, recording_runner_cls) -> None:
        class BrokenAutomations:
            async def list_matching(self, *, app_id, type_id, trigger):
                raise RuntimeError("db down")

        runner = recording_runner_cls()
        dispatcher = AutomationDispatcher(automations=BrokenAutomations(), runner=runner)

        started = await dispatcher.handle_event(
            RecordEvent(type=RecordEventType.record_created, app_id="a", type_id="t", record_id="r")
        )

        assert started == 0
        assert runner.calls == []

    async def test_start_is_idempotent_and_stop_unsubscribes(self, store, recording_runner_cls) -> None:
        bus = EventBus()
        dispatcher = AutomationDispatcher(automations=store.automations, runner=recording_runner_cls())

        dispatcher.start(bus)
        dispatcher.start(bus)
        assert bus.subscriber_count(RECORD_EVENT_TOPIC) == 1

        dispatcher.stop()
        assert bus.subscriber_count(RECORD_EVENT_TOPIC) == 0


class TestCreateRecordTriggersAutomation:
    async def test_tool_created_record_reaches_runner_once(self, store, app, contact, recording_runner_cls) -> None:
        automation = await _automation(store, app, contact, "welcome")
        bus = EventBus()
        runner = recording_runner_cls(fail_for=[automation.id])
        dispatcher = AutomationDispatcher(automations=store.automations, runner=runner)
        dispatcher.start(bus)
        tools = build_tool_executor(store=store, publish=bus.publisher())

        result = await tools.execute(
            "create_record", {"type_id": contact.id, "data": {"f": "Ada"}}, app_id=app.id, user_id=app.user_id
        )
        await bus.wait_idle()
        await dispatcher.wait_idle()

        # the runner's failure never reaches the record creator
        assert result.success
        assert len(runner.calls) == 1
        invoked, event = runner.calls[0]
        assert invoked.id == automation.id
        assert event.record == {"f": "Ada"}
        assert event.record_id == result.result["id"]

    async def test_failing_automation_leaves_sibling_run_successful(
        self, store, app, contact, fake_sandbox_cls
    ) -> None:
        failing = await _automation(store, app, contact, "A", code="log('A')")
        healthy = await _automation(store, app, contact, "B", code="log('B')")

        def execute(code: str) -> ScriptExecution:
            if "log('A')" in code:
                raise RuntimeError("sandbox crashed")
            return ScriptExecution(stdout="__LOG__:B\n__ACTIONS__:[]\n")

        bus = EventBus()
        runner = SandboxAutomationRunner(store=store, publish=bus.publisher(), sandbox=fake_sandbox_cls(execute))
        dispatcher = AutomationDispatcher(automations=store.automations, runner=runner)
        dispatcher.start(bus)
        tools = build_tool_executor(store=store, publish=bus.publisher())

        result = await tools.execute(
            "create_record", {"type_id": contact.id, "data": {"f": "Ada"}}, app_id=app.id, user_id=app.user_id
        )
        await bus.wait_idle()
        await dispatcher.wait_idle()

        assert result.success
        [failed_run] = await store.automation_runs.list(failing.id)
        [healthy_run] = await store.automation_runs.list(healthy.id)
        assert failed_run.status is AutomationRunStatus.error
        assert failed_run.error == "sandbox crashed"
        assert healthy_run.status is AutomationRunStatus.success
        assert healthy_run.trigger_record_id == result.result["id"]
        assert [entry.message for entry in healthy_run.logs] == ["B"]
