"""Wiring of the process-wide services."""
from __future__ import annotations

from dataclasses import dataclass

from teamhub.application.dashboards import DashboardService
from teamhub.application.reports import ReportService
from teamhub.application.teams import TeamService
from teamhub.application.users import UserService
from teamhub.application.widgets import WidgetResolver
from teamhub.core.config import Settings
from teamhub.infrastructure.channel import NotificationChannel
from teamhub.infrastructure.store import DocumentStore, InMemoryDocumentStore
from teamhub.workers.queue import JobQueue
from teamhub.workers.report_generation import MetricSummaryGenerator, ReportGenerationWorker, ReportGenerator


@dataclass
class ServiceContainer:
    store: DocumentStore
    channel: NotificationChannel
    queue: JobQueue
    users: UserService
    teams: TeamService
    reports: ReportService
    dashboards: DashboardService

    async def start(self) -> None:
        await self.queue.start()

    async def stop(self) -> None:
        await self.queue.stop()
        await self.channel.close()


def build_container(
    settings: Settings,
    *,
    store: DocumentStore | None = None,
    queue: JobQueue | None = None,
    generator: ReportGenerator | None = None,
) -> ServiceContainer:
    store = store or InMemoryDocumentStore()
    users = UserService(store)
    channel = NotificationChannel(user_exists=users.exists)
    queue = queue or JobQueue(settings.queue_policies, history_limit=settings.job_history_limit)

    worker = ReportGenerationWorker(
        store, channel, generator or MetricSummaryGenerator(delay=settings.report_generation_delay)
    )
    worker.register(queue)

    teams = TeamService(store, users, channel)
    reports = ReportService(store, users, channel, queue)
    dashboards = DashboardService(store, users, channel, WidgetResolver(reports.recent_completed))
    return ServiceContainer(
        store=store,
        channel=channel,
        queue=queue,
        users=users,
        teams=teams,
        reports=reports,
        dashboards=dashboards,
    )
