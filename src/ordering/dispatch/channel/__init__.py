"""Courier channel registry.

Provides get_/set_/reset_ accessors for the presence tracker, the real-time
channel and the durable queue. In-memory adapters are the defaults; they
import this package, so each is loaded on first use.
"""

from ordering.dispatch.channel.port import (
    DeliveryOutcome,
    NotificationQueue,
    PresenceTracker,
    QueueUnavailable,
    RealtimeChannel,
)

_presence: PresenceTracker | None = None
_channel: RealtimeChannel | None = None
_queue: NotificationQueue | None = None


def get_presence() -> PresenceTracker:
    global _presence
    if _presence is None:
        from ordering.dispatch.channel.memory_adapter import InMemoryPresence

        _presence = InMemoryPresence()
    return _presence


def get_realtime_channel() -> RealtimeChannel:
    global _channel
    if _channel is None:
        from ordering.dispatch.channel.memory_adapter import InMemoryRealtimeChannel

        _channel = InMemoryRealtimeChannel(get_presence())
    return _channel


def get_notification_queue() -> NotificationQueue:
    global _queue
    if _queue is None:
        from ordering.dispatch.channel.memory_adapter import InMemoryNotificationQueue

        _queue = InMemoryNotificationQueue()
    return _queue


def set_presence(presence: PresenceTracker) -> None:
    global _presence
    _presence = presence


def set_realtime_channel(channel: RealtimeChannel) -> None:
    global _channel
    _channel = channel


def set_notification_queue(queue: NotificationQueue) -> None:
    global _queue
    _queue = queue


def reset_channels() -> None:
    """Reset every courier channel to its default (useful for testing)."""
    global _presence, _channel, _queue
    _presence = None
    _channel = None
    _queue = None


__all__ = [
    "DeliveryOutcome",
    "NotificationQueue",
    "PresenceTracker",
    "QueueUnavailable",
    "RealtimeChannel",
    "get_notification_queue",
    "get_presence",
    "get_realtime_channel",
    "reset_channels",
    "set_notification_queue",
    "set_presence",
    "set_realtime_channel",
]
