"""Infrastructure layer exports."""

from .channel import NotificationChannel, Subscriber
from .store import DocumentStore, InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "NotificationChannel",
    "Subscriber",
]
