from __future__ import annotations

from typing import Any

from teamhub.application.users import UserService, display_name, is_admin
from teamhub.core.errors import Conflict, EnqueueError, Forbidden, NotFound, ValidationFailed
from teamhub.core.logging import get_logger
from teamhub.core.pagination import PageRequest, build_page, matches_search
from teamhub.core.schema import ReportCreate, ReportPatch, ReportRecord
from teamhub.domain import reports as lifecycle
from teamhub.exporters.report_export import ExportedFile, export_report
from teamhub.infrastructure.channel import REPORT_CREATED, REPORT_DELETED, REPORT_STATUS, NotificationChannel
from teamhub.infrastructure.store import REPORTS, TEAMS, DocumentStore
from teamhub.workers.queue import JobQueue
from teamhub.workers.report_generation import REPORT_GENERATION_TOPIC

logger = get_logger(__name__)


class ReportService:
    """Report use cases; the generation worker owns the automatic transitions."""

    def __init__(
        self,
        store: DocumentStore,
        users: UserService,
        channel: NotificationChannel,
        queue: JobQueue,
    ) -> None:
        self._store = store
        self._users = users
        self._channel = channel
        self._queue = queue

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    async def _require(self, report_id: str) -> dict[str, Any]:
        document = await self._store.find_by_id(REPORTS, report_id)
        if document is None:
            raise NotFound("Report not found")
        return document

    @staticmethod
    def _require_owner(document: dict[str, Any], actor: dict[str, Any]) -> None:
        if document["created_by"] != actor["id"] and not is_admin(actor):
            raise Forbidden("Unauthorized")

    async def _check_assignees(self, team: dict[str, Any], assignees: list[str]) -> None:
        found = await self._users.find_many(assignees)
        missing = [user_id for user_id in assignees if user_id not in found]
        if missing:
            raise ValidationFailed(
                "Some assigned users do not exist",
                [{"path": "assignedTo", "message": f"unknown user {user_id}"} for user_id in missing],
            )
        members = set(team.get("members") or [])
        outsiders = [user_id for user_id in assignees if user_id not in members]
        if outsiders:
            raise ValidationFailed(
                "Some assigned users are not in the team",
                [{"path": "assignedTo", "message": f"user {user_id} is not a team member"} for user_id in outsiders],
            )

    async def _serialise(self, document: dict[str, Any]) -> dict[str, Any]:
        record = ReportRecord.model_validate(document).to_api()
        team = await self._store.find_by_id(TEAMS, document["team"])
        people = await self._users.find_many([document["created_by"], *document.get("assigned_to", [])])
        record["team"] = {"id": team["id"], "name": team["name"]} if team else {"id": document["team"], "name": None}
        record["createdBy"] = display_name(people.get(document["created_by"])) or {"id": document["created_by"]}
        record["assignedTo"] = [
            display_name(people[user_id]) for user_id in document.get("assigned_to", []) if user_id in people
        ]
        return record

    # ------------------------------------------------------------------
    # use cases
    # ------------------------------------------------------------------
    async def create(self, actor: dict[str, Any], payload: ReportCreate) -> dict[str, Any]:
        team = await self._store.find_by_id(TEAMS, payload.team)
        if team is None:
            raise ValidationFailed("Team does not exist", [{"path": "team", "message": "unknown team"}])
        assignees = list(dict.fromkeys(payload.assigned_to))
        await self._check_assignees(team, assignees)

        document = await self._store.insert(
            REPORTS,
            {
                "title": payload.title,
                "description": payload.description,
                "type": payload.type,
                "status": lifecycle.PENDING,
                "progress": 0,
                "data": payload.data,
                "team": payload.team,
                "created_by": actor["id"],
                "assigned_to": assignees,
                "metadata": payload.metadata,
                "errors": [],
            },
        )

        try:
            job = await self._queue.enqueue(REPORT_GENERATION_TOPIC, {"reportId": document["id"]})
        except EnqueueError:
            await self._store.delete(REPORTS, document["id"])
            logger.error("Could not enqueue generation for report %s; creation rolled back", document["id"])
            raise
        logger.info("Created report %s (job %s)", document["id"], job.job_id)

        await self._channel.publish(
            REPORT_CREATED, {"reportId": document["id"], "title": document["title"], "team": document["team"]}
        )
        for user_id in assignees:
            await self._channel.notify(user_id, f"New report assigned: {document['title']}")
        return await self._serialise(document)

    async def get(self, report_id: str) -> dict[str, Any]:
        return await self._serialise(await self._require(report_id))

    async def update(self, actor: dict[str, Any], report_id: str, payload: ReportPatch) -> dict[str, Any]:
        current = await self._require(report_id)
        self._require_owner(current, actor)
        changes = payload.changes()

        if "assigned_to" in changes:
            team = await self._store.find_by_id(TEAMS, current["team"])
            if team is None:
                raise ValidationFailed("Team does not exist", [{"path": "team", "message": "unknown team"}])
            changes["assigned_to"] = list(dict.fromkeys(changes["assigned_to"]))
            await self._check_assignees(team, changes["assigned_to"])

        target = changes.get("status", current["status"])
        if "status" in changes:
            try:
                lifecycle.check_override(current["status"], target)
            except lifecycle.InvalidTransition as exc:
                raise Conflict(str(exc)) from exc
        if "status" in changes or "progress" in changes:
            changes["progress"] = lifecycle.resolve_progress(target, changes.get("progress"), current["progress"])

        updated = await self._store.update(REPORTS, report_id, changes)
        if updated is None:
            raise NotFound("Report not found")

        if "status" in changes:
            logger.info("Report %s set to %s by %s", report_id, updated["status"], actor["id"])
            await self._channel.publish(
                REPORT_STATUS,
                {"reportId": report_id, "status": updated["status"], "progress": updated["progress"]},
            )
        return await self._serialise(updated)

    async def delete(self, actor: dict[str, Any], report_id: str) -> None:
        current = await self._require(report_id)
        self._require_owner(current, actor)
        if await self._store.delete(REPORTS, report_id) is None:
            raise NotFound("Report not found")
        logger.info("Deleted report %s", report_id)
        await self._channel.publish(REPORT_DELETED, {"reportId": report_id})

    async def list_reports(
        self,
        page: PageRequest,
        *,
        search: str | None = None,
        report_type: str | None = None,
        status: str | None = None,
        team: str | None = None,
    ) -> dict[str, Any]:
        def predicate(doc: dict[str, Any]) -> bool:
            if report_type and doc.get("type") != report_type:
                return False
            if status and doc.get("status") != status:
                return False
            if team and doc.get("team") != team:
                return False
            return matches_search(search, doc.get("title"), doc.get("description"))

        total = await self._store.count(REPORTS, predicate)
        rows = await self._store.find(
            REPORTS, predicate, sort_key="created_at", descending=True, skip=page.skip, limit=page.limit
        )
        return build_page([await self._serialise(row) for row in rows], total, page)

    async def recent_completed(self, team_id: str, limit: int = 10) -> list[dict[str, Any]]:
        rows = await self._store.find(
            REPORTS,
            lambda doc: doc.get("team") == team_id and doc.get("status") == lifecycle.COMPLETED,
            sort_key="updated_at",
            descending=True,
            limit=limit,
        )
        return [ReportRecord.model_validate(row).to_api() for row in rows]

    async def export(self, report_id: str, fmt: str = "json") -> ExportedFile:
        document = await self._require(report_id)
        try:
            return export_report(ReportRecord.model_validate(document), fmt)
        except ValueError as exc:
            raise ValidationFailed(str(exc), [{"path": "format", "message": str(exc)}]) from exc
