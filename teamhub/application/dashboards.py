from __future__ import annotations

from typing import Any

from teamhub.application.users import UserService, display_name, is_admin
from teamhub.application.widgets import WidgetResolver
from teamhub.core.errors import Forbidden, NotFound, ValidationFailed
from teamhub.core.logging import get_logger
from teamhub.core.pagination import PageRequest, build_page, matches_search
from teamhub.core.schema import DashboardCreate, DashboardPatch, DashboardRecord
from teamhub.infrastructure.channel import DASHBOARD_DELETED, DASHBOARD_UPDATED, NotificationChannel
from teamhub.infrastructure.store import DASHBOARDS, TEAMS, DocumentStore

logger = get_logger(__name__)


class DashboardService:
    def __init__(
        self,
        store: DocumentStore,
        users: UserService,
        channel: NotificationChannel,
        resolver: WidgetResolver,
    ) -> None:
        self._store = store
        self._users = users
        self._channel = channel
        self._resolver = resolver

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    async def _require(self, dashboard_id: str) -> dict[str, Any]:
        document = await self._store.find_by_id(DASHBOARDS, dashboard_id)
        if document is None:
            raise NotFound("Dashboard not found")
        return document

    @staticmethod
    def _require_owner(document: dict[str, Any], actor: dict[str, Any]) -> None:
        if document["created_by"] != actor["id"] and not is_admin(actor):
            raise Forbidden("Unauthorized")

    @staticmethod
    def _can_view(document: dict[str, Any], actor: dict[str, Any]) -> bool:
        return (
            document["created_by"] == actor["id"]
            or actor["id"] in (document.get("shared_with") or [])
            or is_admin(actor)
        )

    async def _check_shared_users(self, team_id: str, shared_with: list[str]) -> None:
        team = await self._store.find_by_id(TEAMS, team_id)
        if team is None:
            raise ValidationFailed("Team does not exist", [{"path": "team", "message": "unknown team"}])
        found = await self._users.find_many(shared_with)
        missing = [user_id for user_id in shared_with if user_id not in found]
        if missing:
            raise ValidationFailed(
                "Some shared users do not exist",
                [{"path": "sharedWith", "message": f"unknown user {user_id}"} for user_id in missing],
            )
        members = set(team.get("members") or [])
        outsiders = [user_id for user_id in shared_with if user_id not in members]
        if outsiders:
            raise ValidationFailed(
                "Some shared users are not in the team",
                [{"path": "sharedWith", "message": f"user {user_id} is not a team member"} for user_id in outsiders],
            )

    async def _serialise(self, document: dict[str, Any], *, resolve: bool = False) -> dict[str, Any]:
        record = DashboardRecord.model_validate(document).to_api()
        team = await self._store.find_by_id(TEAMS, document["team"])
        people = await self._users.find_many([document["created_by"], *document.get("shared_with", [])])
        record["team"] = {"id": team["id"], "name": team["name"]} if team else {"id": document["team"], "name": None}
        record["createdBy"] = display_name(people.get(document["created_by"])) or {"id": document["created_by"]}
        record["sharedWith"] = [
            display_name(people[user_id]) for user_id in document.get("shared_with", []) if user_id in people
        ]
        if resolve:
            record["widgets"] = await self._resolver.resolve(document)
        return record

    async def _notify_shared(self, document: dict[str, Any], user_ids: list[str]) -> None:
        for user_id in user_ids:
            await self._channel.notify(user_id, f"New dashboard shared: {document['name']}")

    # ------------------------------------------------------------------
    # use cases
    # ------------------------------------------------------------------
    async def create(self, actor: dict[str, Any], payload: DashboardCreate) -> dict[str, Any]:
        shared_with = list(dict.fromkeys(payload.shared_with))
        await self._check_shared_users(payload.team, shared_with)

        document = await self._store.insert(
            DASHBOARDS,
            {
                "name": payload.name,
                "description": payload.description,
                "widgets": [widget.model_dump() for widget in payload.widgets],
                "team": payload.team,
                "created_by": actor["id"],
                "shared_with": shared_with,
                "metadata": payload.metadata,
            },
        )
        logger.info("Created dashboard %s with %d widget(s)", document["id"], len(document["widgets"]))
        await self._notify_shared(document, shared_with)
        return await self._serialise(document)

    async def get(self, actor: dict[str, Any], dashboard_id: str) -> dict[str, Any]:
        document = await self._require(dashboard_id)
        if not self._can_view(document, actor):
            raise Forbidden("Unauthorized")
        return await self._serialise(document, resolve=True)

    async def update(self, actor: dict[str, Any], dashboard_id: str, payload: DashboardPatch) -> dict[str, Any]:
        current = await self._require(dashboard_id)
        self._require_owner(current, actor)
        changes = payload.changes()

        newly_shared: list[str] = []
        if "shared_with" in changes:
            changes["shared_with"] = list(dict.fromkeys(changes["shared_with"]))
            await self._check_shared_users(current["team"], changes["shared_with"])
            previous = set(current.get("shared_with") or [])
            newly_shared = [user_id for user_id in changes["shared_with"] if user_id not in previous]

        updated = await self._store.update(DASHBOARDS, dashboard_id, changes)
        if updated is None:
            raise NotFound("Dashboard not found")

        changed = payload.model_dump(by_alias=True, exclude_unset=True, mode="json")
        await self._channel.publish(DASHBOARD_UPDATED, {"dashboardId": dashboard_id, "changes": changed})
        await self._notify_shared(updated, newly_shared)
        return await self._serialise(updated)

    async def delete(self, actor: dict[str, Any], dashboard_id: str) -> None:
        current = await self._require(dashboard_id)
        self._require_owner(current, actor)
        if await self._store.delete(DASHBOARDS, dashboard_id) is None:
            raise NotFound("Dashboard not found")
        logger.info("Deleted dashboard %s", dashboard_id)
        await self._channel.publish(DASHBOARD_DELETED, {"dashboardId": dashboard_id})

    async def list_dashboards(
        self,
        actor: dict[str, Any],
        page: PageRequest,
        *,
        search: str | None = None,
        team: str | None = None,
    ) -> dict[str, Any]:
        def predicate(doc: dict[str, Any]) -> bool:
            if not self._can_view(doc, actor):
                return False
            if team and doc.get("team") != team:
                return False
            return matches_search(search, doc.get("name"), doc.get("description"))

        total = await self._store.count(DASHBOARDS, predicate)
        rows = await self._store.find(
            DASHBOARDS, predicate, sort_key="created_at", descending=True, skip=page.skip, limit=page.limit
        )
        return build_page([await self._serialise(row) for row in rows], total, page)
