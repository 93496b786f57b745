from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from teamhub.application import ServiceContainer
from teamhub.core.pagination import PageRequest
from teamhub.core.schema import UserCreate
from teamhub.routes.deps import get_container, get_current_user, page_params

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=201)
async def register_user(payload: UserCreate, container: ServiceContainer = Depends(get_container)) -> dict:
    return await container.users.register(payload)


@router.get("")
async def list_users(
    search: str | None = Query(default=None),
    page: PageRequest = Depends(page_params),
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.users.list_users(page, search)


@router.get("/me")
async def get_me(
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.users.get(user["id"])


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.users.get(user_id)
