"""
In-process real-time event bus.

Channels are plain strings derived from entity ids (``user-7``, ``task-12``,
``bid-40``). Publishers fan events out to every live subscription on a
channel; subscribers consume them either by iterating asynchronously or by
calling ``drain()`` from synchronous code.
"""
import asyncio
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

NEW_MESSAGE = 'new-message'
MESSAGES_READ = 'messages-read'
NEW_BID = 'new-bid'
BID_ACCEPTED = 'bid-accepted'
BID_REJECTED = 'bid-rejected'
TASK_UPDATED = 'task-updated'
SUBMISSION_STATUS_UPDATED = 'submission-status-updated'
NEW_NOTIFICATION = 'new-notification'
URGENT_NOTIFICATION = 'urgent-notification'
NEW_SUPPORT_MESSAGE = 'new-support-message'

# Shared feed for every admin watching the support inbox
ADMIN_SUPPORT_CHANNEL = 'admin-support'


def user_channel(user_id):
    return f"user-{user_id}"


def task_channel(assignment_id):
    return f"task-{assignment_id}"


def bid_channel(bid_id):
    return f"bid-{bid_id}"


@dataclass
class Event:
    channel: str
    name: str
    payload: Any = None
    published_at: Any = field(default_factory=timezone.now)


class Subscription:
    """A live feed of events for one channel."""

    def __init__(self, bus, channel, poll_interval=None):
        self.bus = bus
        self.channel = channel
        self.poll_interval = poll_interval or getattr(settings, 'REALTIME_POLL_INTERVAL', 0.1)
        self.closed = False
        self._queue = queue.SimpleQueue()

    def deliver(self, event):
        if not self.closed:
            self._queue.put(event)

    def drain(self):
        """Return every event queued so far without blocking."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def close(self):
        self.bus.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self):
        while True:
            try:
                return self._queue.get_nowait()
            except queue.Empty:
                if self.closed:
                    raise StopAsyncIteration
                await asyncio.sleep(self.poll_interval)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __repr__(self):
        return f"<Subscription {self.channel}{' closed' if self.closed else ''}>"


class EventBus:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions = {}

    def subscribe(self, channel, poll_interval=None):
        subscription = Subscription(self, channel, poll_interval)
        with self._lock:
            self._subscriptions.setdefault(channel, []).append(subscription)
        logger.debug(f"Subscribed to {channel}")
        return subscription

    def unsubscribe(self, subscription):
        with self._lock:
            subscription.closed = True
            subscribers = self._subscriptions.get(subscription.channel, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscriptions.pop(subscription.channel, None)
        logger.debug(f"Unsubscribed from {subscription.channel}")

    def subscriber_count(self, channel):
        with self._lock:
            return len(self._subscriptions.get(channel, []))

    def publish(self, channel, event, payload=None):
        """Deliver ``event`` to every subscriber of ``channel``. Never raises."""
        try:
            message = Event(channel=channel, name=event, payload=payload)
            with self._lock:
                subscribers = list(self._subscriptions.get(channel, []))
            for subscription in subscribers:
                subscription.deliver(message)
            logger.debug(f"Published {event} on {channel} to {len(subscribers)} subscriber(s)")
            return len(subscribers)
        except Exception as e:
            logger.error(f"Failed to publish {event} on {channel}: {str(e)}")
            return 0


_default_bus = EventBus()


def get_event_bus():
    return _default_bus
