from __future__ import annotations

from typing import Any

from teamhub.core.errors import Conflict, NotFound
from teamhub.core.logging import get_logger
from teamhub.core.pagination import PageRequest, build_page, matches_search
from teamhub.core.schema import UserCreate, UserRecord
from teamhub.infrastructure.store import USERS, DocumentStore

logger = get_logger(__name__)

ADMIN_ROLES = frozenset({"admin", "superadmin"})


def is_admin(user: dict[str, Any]) -> bool:
    return user.get("role") in ADMIN_ROLES


def display_name(user: dict[str, Any] | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {"id": user["id"], "firstName": user["first_name"], "lastName": user["last_name"]}


class UserService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def register(self, payload: UserCreate) -> dict[str, Any]:
        email = payload.email
        existing = await self._store.find(USERS, lambda doc: doc.get("email") == email, limit=1)
        if existing:
            raise Conflict("User already exists")
        document = await self._store.insert(
            USERS,
            {
                "email": email,
                "first_name": payload.first_name,
                "last_name": payload.last_name,
                "role": payload.role,
                "teams": [],
            },
        )
        logger.info("Registered user %s (%s)", document["id"], payload.role)
        return UserRecord.model_validate(document).to_api()

    async def get(self, user_id: str) -> dict[str, Any]:
        document = await self._store.find_by_id(USERS, user_id)
        if document is None:
            raise NotFound("User not found")
        return UserRecord.model_validate(document).to_api()

    async def find(self, user_id: str) -> dict[str, Any] | None:
        return await self._store.find_by_id(USERS, user_id)

    async def exists(self, user_id: str) -> bool:
        return await self._store.find_by_id(USERS, user_id) is not None

    async def find_many(self, user_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Resolve ids to documents, silently skipping unknown ids."""
        found: dict[str, dict[str, Any]] = {}
        for user_id in dict.fromkeys(user_ids):
            document = await self._store.find_by_id(USERS, user_id)
            if document is not None:
                found[user_id] = document
        return found

    async def list_users(self, page: PageRequest, search: str | None = None) -> dict[str, Any]:
        def predicate(doc: dict[str, Any]) -> bool:
            return matches_search(search, doc.get("email"), doc.get("first_name"), doc.get("last_name"))

        total = await self._store.count(USERS, predicate)
        rows = await self._store.find(
            USERS, predicate, sort_key="created_at", descending=True, skip=page.skip, limit=page.limit
        )
        return build_page([UserRecord.model_validate(row).to_api() for row in rows], total, page)
