"""Domain entities for background jobs."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

JOB_STATUSES = ("queued", "running", "retrying", "completed", "failed")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class RetryPolicy:
    """How often a topic retries a failing job and how long it waits between tries."""

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        if attempt < 1:
            return 0.0
        return max(0.0, self.backoff_seconds * (self.backoff_factor ** (attempt - 1)))


@dataclass(slots=True)
class Job:
    """Represents one unit of work submitted to a queue topic."""

    job_id: str
    topic: str
    payload: dict[str, Any]
    status: str = "queued"
    attempts: int = 0
    error: str | None = None
    enqueued_at: str = field(default_factory=_now)
    finished_at: str | None = None

    @property
    def finished(self) -> bool:
        return self.status in {"completed", "failed"}

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "topic": self.topic,
            "payload": dict(self.payload),
            "status": self.status,
            "attempts": self.attempts,
            "error": self.error,
            "enqueuedAt": self.enqueued_at,
            "finishedAt": self.finished_at,
        }
