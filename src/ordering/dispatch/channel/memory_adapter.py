"""In-memory presence, push channel and queue. They record traffic for test assertions."""

import threading
from uuid import uuid4

from ordering.dispatch.channel.port import (
    DeliveryOutcome,
    NotificationQueue,
    PresenceTracker,
    QueueUnavailable,
    RealtimeChannel,
)


class InMemoryPresence(PresenceTracker):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connected: set[str] = set()

    def is_connected(self, recipient_id: str) -> bool:
        with self._lock:
            return str(recipient_id) in self._connected

    def connect(self, recipient_id: str) -> None:
        with self._lock:
            self._connected.add(str(recipient_id))

    def disconnect(self, recipient_id: str) -> None:
        with self._lock:
            self._connected.discard(str(recipient_id))


class InMemoryRealtimeChannel(RealtimeChannel):
    """Push channel that delivers to whoever the presence tracker reports connected."""

    def __init__(self, presence: PresenceTracker) -> None:
        self.presence = presence
        self.sent: list[dict] = []

    def send_to_recipient(self, recipient_id: str, payload: dict) -> DeliveryOutcome:
        if not self.presence.is_connected(recipient_id):
            return DeliveryOutcome.NOT_CONNECTED

        self.sent.append({"message_id": f"rt-{uuid4().hex[:12]}", "recipient_id": str(recipient_id), "payload": payload})
        return DeliveryOutcome.DELIVERED


class InMemoryNotificationQueue(NotificationQueue):
    def __init__(self) -> None:
        self.tasks: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification queue unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification queue unavailable") -> None:
        """Configure the fake queue behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def enqueue(self, task: dict) -> None:
        if not self.should_succeed:
            raise QueueUnavailable(self.failure_reason)
        self.tasks.append(task)

    def reset(self) -> None:
        self.tasks.clear()
        self.should_succeed = True
        self.failure_reason = "Notification queue unavailable"
