from __future__ import annotations

from typing import List

import pytest

from appweaver_ai.agent_core import build_tool_executor
from appweaver_ai.core.models import RecordEvent


@pytest.fixture
def published() -> List[RecordEvent]:
    return []


@pytest.fixture
def executor(store, published):
    return build_tool_executor(store=store, publish=published.append)
