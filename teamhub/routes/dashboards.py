from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from teamhub.application import ServiceContainer
from teamhub.core.pagination import PageRequest
from teamhub.core.schema import DashboardCreate, DashboardPatch
from teamhub.routes.deps import get_container, get_current_user, page_params

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


@router.get("")
async def list_dashboards(
    search: str | None = Query(default=None),
    team: str | None = Query(default=None),
    page: PageRequest = Depends(page_params),
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.dashboards.list_dashboards(user, page, search=search, team=team)


@router.post("", status_code=201)
async def create_dashboard(
    payload: DashboardCreate,
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.dashboards.create(user, payload)


@router.get("/{dashboard_id}")
async def get_dashboard(
    dashboard_id: str,
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """Return the dashboard with every widget's live data resolved."""
    return await container.dashboards.get(user, dashboard_id)


@router.put("/{dashboard_id}")
async def update_dashboard(
    dashboard_id: str,
    payload: DashboardPatch,
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.dashboards.update(user, dashboard_id, payload)


@router.delete("/{dashboard_id}")
async def delete_dashboard(
    dashboard_id: str,
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    await container.dashboards.delete(user, dashboard_id)
    return {"detail": "Dashboard deleted successfully"}
