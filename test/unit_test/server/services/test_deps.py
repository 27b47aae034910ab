"""Unit tests for server request dependencies.

Tests verify that ContainerDep and UserIdDep resolve through FastAPI's
Depends mechanism and that the caller identity header is enforced.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from appweaver_ai.server.services.deps import (
    ContainerDep,
    UserIdDep,
    get_container,
    get_user_id,
)


class TestContainerDep:
    def test_container_dep_uses_get_container(self):
        depends_obj = ContainerDep.__metadata__[0]
        assert depends_obj.dependency == get_container

    def test_get_container_reads_app_state(self):
        request = MagicMock()
        sentinel = object()
        request.app.state.container = sentinel

        assert get_container(request) is sentinel


class TestUserIdDep:
    def test_user_id_dep_uses_get_user_id(self):
        depends_obj = UserIdDep.__metadata__[0]
        assert depends_obj.dependency == get_user_id

    def test_header_value_is_stripped(self):
        assert get_user_id("  user-1 ") == "user-1"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_identity_is_unauthorized(self, value):
        with pytest.raises(HTTPException) as exc_info:
            get_user_id(value)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Missing X-User-Id header"
