from __future__ import annotations

from typing import Any

from fastapi import Depends, Header, Query, Request

from teamhub.application import ServiceContainer
from teamhub.application.users import is_admin
from teamhub.core.errors import AuthenticationRequired, Forbidden
from teamhub.core.pagination import DEFAULT_LIMIT, MAX_LIMIT, PageRequest


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_current_user(
    x_user_id: str | None = Header(default=None),
    container: ServiceContainer = Depends(get_container),
) -> dict[str, Any]:
    """Resolve the acting user from the ``X-User-Id`` header."""
    if not x_user_id:
        raise AuthenticationRequired("Authentication required")
    user = await container.users.find(x_user_id.strip())
    if user is None:
        raise AuthenticationRequired("Unknown user")
    return user


async def require_admin(user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    if not is_admin(user):
        raise Forbidden("Admin access required")
    return user


def page_params(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
) -> PageRequest:
    return PageRequest(page=page, limit=limit)
