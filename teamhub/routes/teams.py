from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from teamhub.application import ServiceContainer
from teamhub.core.pagination import PageRequest
from teamhub.core.schema import TeamCreate, TeamPatch, TeamStatus
from teamhub.routes.deps import get_container, get_current_user, page_params, require_admin

router = APIRouter(prefix="/teams", tags=["teams"])


@router.get("")
async def list_teams(
    search: str | None = Query(default=None),
    status: TeamStatus | None = Query(default=None),
    page: PageRequest = Depends(page_params),
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.teams.list_teams(page, search=search, status=status)


@router.post("", status_code=201)
async def create_team(
    payload: TeamCreate,
    _: dict[str, Any] = Depends(require_admin),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.teams.create(payload)


@router.get("/{team_id}")
async def get_team(
    team_id: str,
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.teams.get(team_id)


@router.get("/{team_id}/members")
async def get_team_members(
    team_id: str,
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.teams.get_members(team_id)


@router.put("/{team_id}")
async def update_team(
    team_id: str,
    payload: TeamPatch,
    _: dict[str, Any] = Depends(require_admin),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.teams.update(team_id, payload)


@router.delete("/{team_id}")
async def delete_team(
    team_id: str,
    _: dict[str, Any] = Depends(require_admin),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    await container.teams.delete(team_id)
    return {"detail": "Team deleted successfully"}
