from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from teamhub.application import ServiceContainer
from teamhub.core.pagination import PageRequest
from teamhub.core.schema import ReportCreate, ReportPatch, ReportStatus, ReportType
from teamhub.routes.deps import get_container, get_current_user, page_params

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("")
async def list_reports(
    search: str | None = Query(default=None),
    type: ReportType | None = Query(default=None),
    status: ReportStatus | None = Query(default=None),
    team: str | None = Query(default=None),
    page: PageRequest = Depends(page_params),
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.reports.list_reports(page, search=search, report_type=type, status=status, team=team)


@router.post("", status_code=201)
async def create_report(
    payload: ReportCreate,
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """Persist a report in ``pending`` and queue its generation."""
    return await container.reports.create(user, payload)


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.reports.get(report_id)


@router.put("/{report_id}")
async def update_report(
    report_id: str,
    payload: ReportPatch,
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return await container.reports.update(user, report_id, payload)


@router.delete("/{report_id}")
async def delete_report(
    report_id: str,
    user: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    await container.reports.delete(user, report_id)
    return {"detail": "Report deleted successfully"}


@router.get("/{report_id}/export")
async def export_report(
    report_id: str,
    format: str = Query(default="json"),
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    exported = await container.reports.export(report_id, format)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
