from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol

import pandas as pd

from teamhub.core.errors import NonRetryableJobError
from teamhub.core.logging import get_logger
from teamhub.domain import reports as lifecycle
from teamhub.domain.jobs import Job
from teamhub.infrastructure.channel import REPORT_STATUS, NotificationChannel
from teamhub.infrastructure.store import REPORTS, DocumentStore, utcnow
from teamhub.workers.queue import JobQueue

logger = get_logger(__name__)

REPORT_GENERATION_TOPIC = "report-generation"

ProgressCallback = Callable[[int], Awaitable[None]]


class ReportGenerator(Protocol):
    """Produces the output that gets merged into a report's ``data``."""

    async def generate(self, report: dict[str, Any], progress: ProgressCallback) -> dict[str, Any]: ...


class MetricSummaryGenerator:
    """Default generator: rolls ``data.metrics`` up per category."""

    def __init__(self, delay: float = 0.0) -> None:
        self._delay = delay

    async def generate(self, report: dict[str, Any], progress: ProgressCallback) -> dict[str, Any]:
        await progress(10)
        if self._delay:
            await asyncio.sleep(self._delay)
        metrics = (report.get("data") or {}).get("metrics")
        output: dict[str, Any] = {}
        if metrics:
            output = await asyncio.to_thread(self._summarise, report.get("title") or "", metrics)
        await progress(60)
        output["generatedAt"] = datetime.now(timezone.utc).isoformat()
        output["summary"] = "Report generated successfully"
        return output

    @staticmethod
    def _summarise(title: str, metrics: Any) -> dict[str, Any]:
        if not isinstance(metrics, list) or not all(isinstance(item, dict) for item in metrics):
            raise ValueError("data.metrics must be a list of objects")
        frame = pd.DataFrame(metrics)
        if "value" not in frame.columns:
            raise ValueError("every metric needs a value")
        frame["value"] = pd.to_numeric(frame["value"], errors="raise")
        if "category" not in frame.columns:
            frame["category"] = "General"
        frame["category"] = frame["category"].fillna("General").astype(str)

        grouped = frame.groupby("category", sort=True)["value"].agg(["sum", "mean", "count"])
        summary = [
            {
                "category": str(category),
                "total": round(float(row["sum"]), 2),
                "average": round(float(row["mean"]), 2),
                "count": int(row["count"]),
            }
            for category, row in grouped.iterrows()
        ]
        insights = [f"{item['category']}: {item['count']} metric(s), total {item['total']}" for item in summary]
        insights.insert(0, f"{title or 'Report'} aggregates {len(frame)} metric(s)")
        return {"metricSummary": summary, "insights": insights}


class ReportGenerationWorker:
    """Drives a report from ``pending`` to a terminal status."""

    def __init__(self, store: DocumentStore, channel: NotificationChannel, generator: ReportGenerator) -> None:
        self._store = store
        self._channel = channel
        self._generator = generator

    def register(self, queue: JobQueue) -> None:
        queue.register(REPORT_GENERATION_TOPIC, self.handle, on_exhausted=self.handle_exhausted)

    async def handle(self, job: Job) -> None:
        report_id = str(job.payload.get("reportId") or "")
        report = await self._store.find_by_id(REPORTS, report_id) if report_id else None
        if report is None:
            raise NonRetryableJobError(f"report {report_id or '<missing>'} not found")

        async def progress(value: int) -> None:
            await self._record_progress(report_id, value)

        output = await self._generator.generate(report, progress)
        await self._complete(report_id, output or {})

    async def handle_exhausted(self, job: Job, exc: BaseException) -> None:
        report_id = str(job.payload.get("reportId") or "")
        report = await self._store.find_by_id(REPORTS, report_id) if report_id else None
        if report is None:
            logger.info("Report %s no longer exists; nothing to mark failed", report_id or "<missing>")
            return
        if lifecycle.is_terminal(report["status"]):
            logger.info("Report %s already %s; keeping it", report_id, report["status"])
            return

        errors = list(report.get("errors") or [])
        errors.append({"message": str(exc) or exc.__class__.__name__, "timestamp": utcnow()})
        updated = await self._store.update(REPORTS, report_id, {"status": lifecycle.FAILED, "errors": errors})
        if updated is None:
            return
        logger.warning("Report %s marked failed: %s", report_id, exc)
        await self._publish(updated)

    async def _record_progress(self, report_id: str, value: int) -> None:
        report = await self._store.find_by_id(REPORTS, report_id)
        if report is None or lifecycle.is_terminal(report["status"]):
            return
        lifecycle.check_automatic(report["status"], lifecycle.IN_PROGRESS)
        progress = max(0, min(99, int(value)))
        updated = await self._store.update(
            REPORTS, report_id, {"status": lifecycle.IN_PROGRESS, "progress": progress}
        )
        if updated is not None:
            await self._publish(updated)

    async def _complete(self, report_id: str, output: dict[str, Any]) -> None:
        # re-read right before the terminal write
        report = await self._store.find_by_id(REPORTS, report_id)
        if report is None:
            logger.info("Report %s was deleted during generation; dropping result", report_id)
            return
        if lifecycle.is_terminal(report["status"]):
            logger.info("Report %s already %s; dropping generation result", report_id, report["status"])
            return
        lifecycle.check_automatic(report["status"], lifecycle.COMPLETED)

        data = {**(report.get("data") or {}), **output}
        updated = await self._store.update(
            REPORTS, report_id, {"status": lifecycle.COMPLETED, "progress": 100, "data": data}
        )
        if updated is None:
            return
        logger.info("Report %s completed", report_id)
        await self._publish(updated)

    async def _publish(self, report: dict[str, Any]) -> None:
        await self._channel.publish(
            REPORT_STATUS,
            {"reportId": report["id"], "status": report["status"], "progress": report["progress"]},
        )
