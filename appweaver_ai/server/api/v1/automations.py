"""
Automation Runs API Endpoints.

Manual execution of an automation and paginated access to its run history.
"""

from typing import List

from fastapi import APIRouter, Query

from appweaver_ai.core.errors import NotFoundError
from appweaver_ai.core.logging_config import get_logger
from appweaver_ai.core.models import Automation, AutomationRun, BaseSchema

from ...services.container import PlatformContainer
from ...services.deps import ContainerDep, UserIdDep

logger = get_logger(__name__)
router = APIRouter()

MAX_RUNS_PAGE_SIZE = 50


class RunStarted(BaseSchema):
    run_id: str


class RunPage(BaseSchema):
    runs: List[AutomationRun]
    total: int
    page: int
    page_size: int


async def _owned_automation(container: PlatformContainer, app_id: str, automation_id: str, user_id: str) -> Automation:
    if await container.store.apps.get_for_user(app_id, user_id) is None:
        raise NotFoundError("App not found")
    automation = await container.store.automations.get(automation_id, app_id=app_id)
    if automation is None:
        raise NotFoundError("Automation not found")
    return automation


@router.post(
    "/{app_id}/automations/{automation_id}/run",
    summary="Run Automation",
    description="Execute the automation once with a manual trigger and no record context.",
    response_description="The id of the recorded run.",
)
async def run_automation(app_id: str, automation_id: str, container: ContainerDep, user_id: UserIdDep):
    automation = await _owned_automation(container, app_id, automation_id, user_id)
    logger.info("Manual run of automation %s requested by %s", automation.id, user_id)
    run_id = await container.runner.run_automation(automation, None)
    return RunStarted(run_id=run_id).to_payload()


@router.get(
    "/{app_id}/automations/{automation_id}/runs",
    response_model=RunPage,
    summary="List Automation Runs",
    description="Newest-first run history of the automation.",
)
async def list_runs(
    app_id: str,
    automation_id: str,
    container: ContainerDep,
    user_id: UserIdDep,
    page: int = Query(default=1),
    page_size: int = Query(default=20, alias="pageSize"),
):
    """
    Paginate the automation's runs.

    ``page`` is at least 1 and ``pageSize`` is clamped to [1, 50].
    """
    automation = await _owned_automation(container, app_id, automation_id, user_id)
    page = max(1, page)
    page_size = min(MAX_RUNS_PAGE_SIZE, max(1, page_size))
    runs = await container.store.automation_runs.list(
        automation.id, limit=page_size, offset=(page - 1) * page_size
    )
    total = await container.store.automation_runs.count(automation.id)
    return RunPage(runs=runs, total=total, page=page, page_size=page_size)
