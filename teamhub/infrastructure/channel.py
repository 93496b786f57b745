"""Publish/subscribe fan-out for live client updates.

Every send is a broadcast; the connection-to-user mapping only records who is
listening. Nothing is buffered, so a client that is disconnected while an
event goes out never sees it.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol

from teamhub.core.logging import get_logger

logger = get_logger(__name__)

JOIN = "join"
USER_CONNECTED = "user:connected"
ERROR = "error"
REPORT_CREATED = "report:created"
REPORT_STATUS = "report:status"
REPORT_DELETED = "report:deleted"
DASHBOARD_UPDATED = "dashboard:updated"
DASHBOARD_DELETED = "dashboard:deleted"
TEAM_CREATED = "team:created"
TEAM_UPDATED = "team:updated"
TEAM_DELETED = "team:deleted"
NOTIFICATION_CREATE = "notification:create"
NOTIFICATION_RECEIVED = "notification:received"

UserLookup = Callable[[str], Awaitable[bool]]


class Subscriber(Protocol):
    """Anything that can receive a JSON frame, e.g. a FastAPI ``WebSocket``."""

    async def send_json(self, data: Any) -> None: ...


@dataclass(slots=True)
class Connection:
    connection_id: str
    subscriber: Subscriber
    user_id: str | None = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class NotificationChannel:
    def __init__(self, user_exists: UserLookup | None = None) -> None:
        self._connections: dict[str, Connection] = {}
        self._user_exists = user_exists

    # ------------------------------------------------------------------
    # subscriber bookkeeping
    # ------------------------------------------------------------------
    def connect(self, subscriber: Subscriber) -> str:
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = Connection(connection_id, subscriber)
        logger.info("Socket connected: %s", connection_id)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        logger.info("Socket disconnected: %s", connection_id)
        if connection.user_id:
            logger.info("User %s disconnected", connection.user_id)

    async def join(self, connection_id: str, user_id: str) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None or not user_id:
            return False
        if self._user_exists is not None and not await self._user_exists(user_id):
            logger.info("Ignoring join for unknown user %s", user_id)
            return False
        # the connection may have gone away while the lookup was suspended
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        connection.user_id = user_id
        logger.info("User %s joined", user_id)
        await self._send(connection, USER_CONNECTED, {"userId": user_id, "connectionId": connection_id})
        return True

    def connected_users(self) -> list[dict[str, str]]:
        return [
            {"connectionId": conn.connection_id, "userId": conn.user_id}
            for conn in self._connections.values()
            if conn.user_id
        ]

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # delivery
    # ------------------------------------------------------------------
    async def publish(self, event: str, data: Any, *, exclude: str | None = None) -> int:
        """Broadcast ``event`` to every connection except ``exclude``."""
        delivered = 0
        for connection in list(self._connections.values()):
            if connection.connection_id == exclude:
                continue
            if await self._send(connection, event, data):
                delivered += 1
        logger.debug("Published %s to %d connection(s)", event, delivered)
        return delivered

    async def notify(self, user_id: str, message: str, kind: str = "info") -> int:
        return await self.publish(
            NOTIFICATION_RECEIVED,
            {"userId": user_id, "message": message, "type": kind, "timestamp": _timestamp()},
        )

    async def _send(self, connection: Connection, event: str, data: Any) -> bool:
        try:
            await connection.subscriber.send_json({"event": event, "data": data})
        except Exception as exc:
            logger.warning("Dropping connection %s after failed send: %s", connection.connection_id, exc)
            self.disconnect(connection.connection_id)
            return False
        return True

    # ------------------------------------------------------------------
    # client messages
    # ------------------------------------------------------------------
    async def handle_message(self, connection_id: str, message: Any) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            await self._send(connection, ERROR, {"message": "frames must be objects with an event name"})
            return

        event = message["event"]
        data = message.get("data")

        if event == JOIN:
            user_id = data.get("userId") if isinstance(data, dict) else data
            await self.join(connection_id, str(user_id or ""))
        elif event == REPORT_STATUS:
            if not isinstance(data, dict):
                await self._send(connection, ERROR, {"message": "report:status requires an object payload"})
                return
            await self.publish(
                REPORT_STATUS,
                {"reportId": data.get("reportId"), "status": data.get("status"), "progress": data.get("progress")},
                exclude=connection_id,
            )
        elif event == NOTIFICATION_CREATE:
            if not isinstance(data, dict):
                await self._send(connection, ERROR, {"message": "notification:create requires an object payload"})
                return
            await self.publish(
                NOTIFICATION_RECEIVED,
                {
                    "userId": data.get("userId"),
                    "message": data.get("message"),
                    "type": data.get("type", "info"),
                    "timestamp": _timestamp(),
                },
                exclude=connection_id,
            )
        else:
            logger.debug("Ignoring unknown event %s from %s", event, connection_id)

    async def close(self) -> None:
        self._connections.clear()
