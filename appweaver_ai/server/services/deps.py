"""
Request Dependencies.

Provides the platform container and the caller identity to API endpoints.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from ..core.constant import USER_ID_HEADER
from .container import PlatformContainer


def get_container(request: Request) -> PlatformContainer:
    """Return the container attached to the application at startup."""
    return request.app.state.container


def get_user_id(x_user_id: Annotated[Optional[str], Header(alias=USER_ID_HEADER)] = None) -> str:
    """
    Resolve the caller from the ``X-User-Id`` header.

    Authentication happens in front of this service; requests reaching it
    without an identity are rejected.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return x_user_id.strip()


ContainerDep = Annotated[PlatformContainer, Depends(get_container)]
UserIdDep = Annotated[str, Depends(get_user_id)]
