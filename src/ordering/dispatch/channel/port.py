"""Courier reachability ports: presence, real-time push and the durable queue."""

from abc import ABC, abstractmethod
from enum import Enum


class DeliveryOutcome(Enum):
    DELIVERED = "delivered"
    NOT_CONNECTED = "not_connected"


class QueueUnavailable(Exception):
    """The durable notification queue did not accept a task."""


class PresenceTracker(ABC):
    """Knows which recipients currently hold a live connection.

    Production deployments back this with a shared store so every server
    instance sees the same presence.
    """

    @abstractmethod
    def is_connected(self, recipient_id: str) -> bool: ...

    @abstractmethod
    def connect(self, recipient_id: str) -> None: ...

    @abstractmethod
    def disconnect(self, recipient_id: str) -> None: ...


class RealtimeChannel(ABC):
    @abstractmethod
    def send_to_recipient(self, recipient_id: str, payload: dict) -> DeliveryOutcome:
        """Deliver immediately if the recipient is connected, else report NOT_CONNECTED."""
        ...


class NotificationQueue(ABC):
    @abstractmethod
    def enqueue(self, task: dict) -> None:
        """Accept a best-effort delivery task. Raises QueueUnavailable on failure."""
        ...
