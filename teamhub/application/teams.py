from __future__ import annotations

from typing import Any

from teamhub.application.users import UserService, display_name
from teamhub.core.errors import NotFound, ValidationFailed
from teamhub.core.logging import get_logger
from teamhub.core.pagination import PageRequest, build_page, matches_search
from teamhub.core.schema import TeamCreate, TeamPatch, TeamRecord
from teamhub.infrastructure.channel import TEAM_CREATED, TEAM_DELETED, TEAM_UPDATED, NotificationChannel
from teamhub.infrastructure.store import TEAMS, USERS, DocumentStore

logger = get_logger(__name__)


class TeamService:
    """Team CRUD plus the ``teams`` back-references kept on user records."""

    def __init__(self, store: DocumentStore, users: UserService, channel: NotificationChannel) -> None:
        self._store = store
        self._users = users
        self._channel = channel

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    async def _require_users(self, user_ids: list[str]) -> None:
        found = await self._users.find_many(user_ids)
        missing = [user_id for user_id in dict.fromkeys(user_ids) if user_id not in found]
        if missing:
            raise ValidationFailed(
                "Some users do not exist",
                [{"path": "members", "message": f"unknown user {user_id}"} for user_id in missing],
            )

    async def _link(self, team_id: str, user_ids: list[str]) -> None:
        for user_id in dict.fromkeys(user_ids):
            await self._store.add_to_set(USERS, user_id, "teams", team_id)

    async def _unlink(self, team_id: str, user_ids: list[str]) -> None:
        for user_id in dict.fromkeys(user_ids):
            await self._store.pull(USERS, user_id, "teams", team_id)

    async def _serialise(self, document: dict[str, Any], *, with_email: bool = False) -> dict[str, Any]:
        record = TeamRecord.model_validate(document).to_api()
        users = await self._users.find_many([document["leader"], *document.get("members", [])])

        def describe(user_id: str) -> dict[str, Any] | None:
            user = users.get(user_id)
            summary = display_name(user)
            if summary is None:
                return None
            summary["role"] = user["role"]
            if with_email:
                summary["email"] = user["email"]
            return summary

        record["leader"] = describe(document["leader"])
        record["members"] = [member for member in map(describe, document.get("members", [])) if member]
        record["memberCount"] = len(document.get("members", []))
        return record

    async def require(self, team_id: str) -> dict[str, Any]:
        document = await self._store.find_by_id(TEAMS, team_id)
        if document is None:
            raise NotFound("Team not found")
        return document

    # ------------------------------------------------------------------
    # use cases
    # ------------------------------------------------------------------
    async def create(self, payload: TeamCreate) -> dict[str, Any]:
        members = list(dict.fromkeys(payload.members))
        await self._require_users([*members, payload.leader])

        document = await self._store.insert(
            TEAMS,
            {
                "name": payload.name,
                "description": payload.description,
                "members": members,
                "leader": payload.leader,
                "status": "active",
                "metadata": payload.metadata,
            },
        )
        await self._link(document["id"], [payload.leader, *members])
        logger.info("Created team %s led by %s", document["id"], payload.leader)

        await self._channel.publish(
            TEAM_CREATED, {"teamId": document["id"], "name": document["name"], "leader": document["leader"]}
        )
        return await self._serialise(document)

    async def get(self, team_id: str) -> dict[str, Any]:
        return await self._serialise(await self.require(team_id))

    async def get_members(self, team_id: str) -> dict[str, Any]:
        record = await self._serialise(await self.require(team_id), with_email=True)
        return {"members": record["members"], "leader": record["leader"]}

    async def update(self, team_id: str, payload: TeamPatch) -> dict[str, Any]:
        current = await self.require(team_id)
        changes = payload.changes()
        if "members" in changes:
            changes["members"] = list(dict.fromkeys(changes["members"]))
            await self._require_users(changes["members"])

        updated = await self._store.update(TEAMS, team_id, changes)
        if updated is None:
            raise NotFound("Team not found")

        if "members" in changes:
            previous = set(current.get("members", []))
            retained = set(changes["members"]) | {updated["leader"]}
            await self._link(team_id, changes["members"])
            await self._unlink(team_id, [user_id for user_id in previous if user_id not in retained])

        changed = payload.model_dump(by_alias=True, exclude_unset=True, mode="json")
        await self._channel.publish(TEAM_UPDATED, {"teamId": team_id, "changes": changed})
        return await self._serialise(updated)

    async def delete(self, team_id: str) -> None:
        document = await self._store.delete(TEAMS, team_id)
        if document is None:
            raise NotFound("Team not found")
        await self._unlink(team_id, [document["leader"], *document.get("members", [])])
        logger.info("Deleted team %s", team_id)
        await self._channel.publish(TEAM_DELETED, {"teamId": team_id})

    async def list_teams(
        self, page: PageRequest, *, search: str | None = None, status: str | None = None
    ) -> dict[str, Any]:
        def predicate(doc: dict[str, Any]) -> bool:
            if status and doc.get("status") != status:
                return False
            return matches_search(search, doc.get("name"), doc.get("description"))

        total = await self._store.count(TEAMS, predicate)
        rows = await self._store.find(
            TEAMS, predicate, sort_key="created_at", descending=True, skip=page.skip, limit=page.limit
        )
        return build_page([await self._serialise(row) for row in rows], total, page)
