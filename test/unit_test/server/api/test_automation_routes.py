from __future__ import annotations

import pytest
from httpx import AsyncClient

from appweaver_ai.core.models import Automation, AutomationRun, AutomationRunStatus, AutomationTrigger

HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture
async def automation(store, app) -> Automation:
    return await store.automations.create(
        Automation(app_id=app.id, name="Nightly", trigger=AutomationTrigger.manual, code="log('ran')", created_by="user-1")
    )


def _runs_url(app_id: str, automation_id: str) -> str:
    return f"/api/v1/apps/{app_id}/automations/{automation_id}/runs"


class TestRunAutomation:
    async def test_manual_run_returns_run_id(self, client: AsyncClient, store, app, automation) -> None:
        response = await client.post(f"/api/v1/apps/{app.id}/automations/{automation.id}/run", headers=HEADERS)

        assert response.status_code == 200
        run_id = response.json()["runId"]
        run = await store.automation_runs.get(run_id)
        assert run.status is AutomationRunStatus.success
        assert run.trigger_event == "manual"
        assert [e.message for e in run.logs] == ["ran"]

    async def test_missing_identity_is_unauthorized(self, client: AsyncClient, app, automation) -> None:
        response = await client.post(f"/api/v1/apps/{app.id}/automations/{automation.id}/run")

        assert response.status_code == 401

    async def test_unknown_automation(self, client: AsyncClient, app) -> None:
        response = await client.post(f"/api/v1/apps/{app.id}/automations/nope/run", headers=HEADERS)

        assert response.status_code == 404
        assert response.json() == {"detail": "Automation not found"}

    async def test_other_users_app_is_not_found(self, client: AsyncClient, app, automation) -> None:
        response = await client.post(
            f"/api/v1/apps/{app.id}/automations/{automation.id}/run", headers={"X-User-Id": "user-2"}
        )

        assert response.status_code == 404
        assert response.json() == {"detail": "App not found"}


class TestListRuns:
    async def test_paginates_and_clamps_page_size(self, client: AsyncClient, store, app, automation) -> None:
        for _ in range(3):
            await store.automation_runs.create(AutomationRun(automation_id=automation.id, trigger_event="manual"))

        response = await client.get(_runs_url(app.id, automation.id), params={"pageSize": 500}, headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["pageSize"] == 50
        assert body["page"] == 1
        assert body["total"] == 3
        assert len(body["runs"]) == 3
        assert {"id", "automationId", "status", "triggerEvent", "logs", "createdAt"} <= set(body["runs"][0])

    async def test_second_page(self, client: AsyncClient, store, app, automation) -> None:
        for _ in range(3):
            await store.automation_runs.create(AutomationRun(automation_id=automation.id, trigger_event="manual"))

        response = await client.get(
            _runs_url(app.id, automation.id), params={"page": 2, "pageSize": 2}, headers=HEADERS
        )

        body = response.json()
        assert (body["page"], body["pageSize"], body["total"]) == (2, 2, 3)
        assert len(body["runs"]) == 1

    async def test_page_below_one_is_clamped(self, client: AsyncClient, app, automation) -> None:
        response = await client.get(
            _runs_url(app.id, automation.id), params={"page": 0, "pageSize": 0}, headers=HEADERS
        )

        body = response.json()
        assert (body["page"], body["pageSize"], body["total"], body["runs"]) == (1, 1, 0, [])
