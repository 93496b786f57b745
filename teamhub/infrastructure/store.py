"""Infrastructure layer for document persistence."""
from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

Document = dict[str, Any]
Predicate = Callable[[Document], bool]

USERS = "users"
TEAMS = "teams"
REPORTS = "reports"
DASHBOARDS = "dashboards"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return uuid.uuid4().hex


class DocumentStore(Protocol):
    """Persistence contract: documents keyed by opaque identifiers."""

    async def insert(self, collection: str, document: Document) -> Document: ...

    async def find_by_id(self, collection: str, doc_id: str) -> Document | None: ...

    async def find(
        self,
        collection: str,
        predicate: Predicate | None = None,
        *,
        sort_key: str | None = None,
        descending: bool = False,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Document]: ...

    async def count(self, collection: str, predicate: Predicate | None = None) -> int: ...

    async def update(self, collection: str, doc_id: str, changes: Document) -> Document | None: ...

    async def delete(self, collection: str, doc_id: str) -> Document | None: ...

    async def add_to_set(self, collection: str, doc_id: str, field: str, value: Any) -> None: ...

    async def pull(self, collection: str, doc_id: str, field: str, value: Any) -> None: ...

    async def reset(self) -> None: ...


class InMemoryDocumentStore:
    """Simple in-memory store for fast iteration and tests.

    Documents are copied on the way in and out so callers only ever hold
    snapshots.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------
    async def insert(self, collection: str, document: Document) -> Document:
        stored = copy.deepcopy(document)
        stored.setdefault("id", new_id())
        now = utcnow()
        stored.setdefault("created_at", now)
        stored.setdefault("updated_at", now)
        docs = self._collection(collection)
        if stored["id"] in docs:
            raise KeyError(f"duplicate id {stored['id']} in {collection}")
        docs[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def find_by_id(self, collection: str, doc_id: str) -> Document | None:
        document = self._collection(collection).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def find(
        self,
        collection: str,
        predicate: Predicate | None = None,
        *,
        sort_key: str | None = None,
        descending: bool = False,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Document]:
        rows = [doc for doc in self._collection(collection).values() if predicate is None or predicate(doc)]
        if sort_key:
            rows.sort(key=lambda doc: (doc.get(sort_key) is not None, doc.get(sort_key) or ""), reverse=descending)
        if skip:
            rows = rows[skip:]
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(doc) for doc in rows]

    async def count(self, collection: str, predicate: Predicate | None = None) -> int:
        return sum(1 for doc in self._collection(collection).values() if predicate is None or predicate(doc))

    async def update(self, collection: str, doc_id: str, changes: Document) -> Document | None:
        document = self._collection(collection).get(doc_id)
        if document is None:
            return None
        for key, value in changes.items():
            if key in {"id", "created_at"}:
                continue
            document[key] = copy.deepcopy(value)
        document["updated_at"] = utcnow()
        return copy.deepcopy(document)

    async def delete(self, collection: str, doc_id: str) -> Document | None:
        document = self._collection(collection).pop(doc_id, None)
        return copy.deepcopy(document) if document is not None else None

    async def add_to_set(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        document = self._collection(collection).get(doc_id)
        if document is None:
            return
        values = document.setdefault(field, [])
        if value not in values:
            values.append(value)
            document["updated_at"] = utcnow()

    async def pull(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        document = self._collection(collection).get(doc_id)
        if document is None:
            return
        values = document.get(field) or []
        if value in values:
            document[field] = [item for item in values if item != value]
            document["updated_at"] = utcnow()

    async def reset(self) -> None:
        self._collections.clear()
