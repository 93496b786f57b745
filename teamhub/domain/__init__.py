"""Domain layer definitions."""

from .jobs import Job, RetryPolicy
from .reports import InvalidTransition

__all__ = [
    "InvalidTransition",
    "Job",
    "RetryPolicy",
]
