from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from teamhub.application import ServiceContainer
from teamhub.core.errors import NotFound
from teamhub.routes.deps import get_container, require_admin

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("")
async def list_jobs(
    topic: str | None = Query(default=None),
    _: dict[str, Any] = Depends(require_admin),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return {"items": [job.to_dict() for job in container.queue.list_jobs(topic)]}


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    _: dict[str, Any] = Depends(require_admin),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    job = container.queue.get_job(job_id)
    if job is None:
        raise NotFound("Job not found")
    return job.to_dict()
