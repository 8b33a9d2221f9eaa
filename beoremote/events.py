# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Notification classification and event publishing.

Envelopes are dispatched on their (kind, type) pair:

    (renderer, VOLUME)                   -> "volume"  VolumeEvent
    (playing,  NOW_PLAYING_STORED_MUSIC) -> "track"   TrackEvent
    (playing,  PROGRESS_INFORMATION)     -> "state"   TransportStateEvent

Anything else is dropped; new firmware adds kinds all the time.

The EventBus is a small synchronous pub/sub.  subscribe() returns a
Subscription handle; cancelling the handle is the only way to unsubscribe.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from .errors import ParseError
from .models import NotificationEnvelope, TrackEvent, TransportStateEvent, VolumeEvent
from .volume import DEFAULT_SCALE, VolumeScale

logger = logging.getLogger(__name__)

TRACK = "track"
STATE = "state"
VOLUME = "volume"
AVAILABLE = "available"
UNAVAILABLE = "unavailable"
ERROR = "error"

EVENT_NAMES = (TRACK, STATE, VOLUME, AVAILABLE, UNAVAILABLE, ERROR)


# ── Classification ──

def _first_image(images) -> str | None:
    if isinstance(images, list) and images and isinstance(images[0], dict):
        return images[0].get("url") or None
    return None


def _track(data: dict) -> TrackEvent:
    image = _first_image(data.get("trackImage")) or _first_image(data.get("albumImage"))
    queue_item_id = data.get("playQueueItemId")
    return TrackEvent(
        name=data.get("name") or None,
        artist=data.get("artist") or None,
        album=data.get("album") or None,
        image_url=image,
        duration_seconds=data.get("duration") or None,
        queue_item_id=str(queue_item_id) if queue_item_id else None,
    )


def _progress(data: dict) -> TransportStateEvent:
    return TransportStateEvent(
        playing=data.get("state") == "play",
        position_seconds=data.get("position") or 0,
    )


def classify(envelope: NotificationEnvelope,
             scale: VolumeScale = DEFAULT_SCALE) -> tuple[str, Any] | None:
    """Return ``(event_name, event)`` for a known envelope, None otherwise.

    Raises ParseError when a known envelope lacks the fields it needs.
    """
    kind, type_, data = envelope.kind, envelope.type, envelope.data

    if kind == "renderer" and type_ == "VOLUME":
        speaker = data.get("speaker")
        level = speaker.get("level") if isinstance(speaker, dict) else None
        if not isinstance(level, (int, float)) or isinstance(level, bool):
            raise ParseError("VOLUME notification without speaker.level", repr(data))
        return VOLUME, VolumeEvent(percentage=scale.to_percentage(level))

    if kind == "playing":
        if type_ == "NOW_PLAYING_STORED_MUSIC":
            return TRACK, _track(data)
        if type_ == "PROGRESS_INFORMATION":
            return STATE, _progress(data)

    return None


# ── Publish / subscribe ──

class Subscription:
    """Handle returned by EventBus.subscribe().  cancel() is idempotent."""

    def __init__(self, bus: "EventBus", event: str, handler: Callable):
        self._bus = bus
        self.event = event
        self.handler = handler
        self.active = True

    def cancel(self):
        if self.active:
            self.active = False
            self._bus._remove(self)

    def __repr__(self):
        state = "active" if self.active else "cancelled"
        return f"<Subscription {self.event} {state}>"


class EventBus:
    """Fan out named events to handlers, in registration order.

    Handlers may be plain callables or coroutine functions; coroutines are
    scheduled as tasks so the publisher is never blocked.  A handler that
    raises is logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._subscriptions: dict[str, list[Subscription]] = {name: [] for name in EVENT_NAMES}
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, event: str, handler: Callable) -> Subscription:
        if event not in self._subscriptions:
            raise ValueError(f"Unknown event '{event}'")
        subscription = Subscription(self, event, handler)
        self._subscriptions[event].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription):
        try:
            self._subscriptions[subscription.event].remove(subscription)
        except ValueError:
            pass

    def clear(self):
        for subscriptions in self._subscriptions.values():
            for subscription in list(subscriptions):
                subscription.cancel()

    def publish(self, event: str, payload: Any = None):
        for subscription in list(self._subscriptions[event]):
            if not subscription.active:
                continue
            try:
                if payload is None:
                    result = subscription.handler()
                else:
                    result = subscription.handler(payload)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._task_done)
            except Exception:
                logger.exception("Listener for '%s' failed", event)

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Async listener failed", exc_info=task.exception())
