"""Error taxonomy shared by services, workers and the HTTP layer."""
from __future__ import annotations

from typing import Any


class TeamHubError(Exception):
    """Base class for errors that map onto a client-visible response."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(TeamHubError):
    status_code = 400

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class AuthenticationRequired(TeamHubError):
    status_code = 401


class Forbidden(TeamHubError):
    status_code = 403


class NotFound(TeamHubError):
    status_code = 404


class Conflict(TeamHubError):
    status_code = 409


class UpstreamFailure(TeamHubError):
    status_code = 503


class EnqueueError(UpstreamFailure):
    """Raised when a job cannot be handed to the queue."""


class NonRetryableJobError(Exception):
    """Raised by job handlers for failures that retrying cannot fix."""
