# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Data types shared by the BeoNetRemote client.

Notification wire shape (one JSON object per frame):

    {"notification": {"timestamp": 1234, "type": "VOLUME",
                      "kind": "renderer", "data": {...}}}
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from .errors import ParseError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080


@dataclass
class Address:
    """Where the device lives.  Mutable: discovery may move it in place."""

    host: str
    port: int = DEFAULT_PORT

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def __str__(self):
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class NotificationEnvelope:
    timestamp: float | None
    type: str
    kind: str
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, text: str) -> "NotificationEnvelope":
        """Decode one framed slice.  Raises ParseError on anything malformed."""
        try:
            message = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in notification: {e}", text) from e

        notification = message.get("notification") if isinstance(message, dict) else None
        if not isinstance(notification, dict):
            raise ParseError("Frame has no 'notification' object", text)

        kind = notification.get("kind")
        type_ = notification.get("type")
        if not isinstance(kind, str) or not isinstance(type_, str):
            raise ParseError("Notification is missing 'kind' or 'type'", text)

        data = notification.get("data")
        if data is None:
            data = {}
        elif not isinstance(data, dict):
            raise ParseError("Notification 'data' is not an object", text)

        return cls(
            timestamp=notification.get("timestamp"),
            type=type_,
            kind=kind,
            data=data,
        )


# ── Domain events ──

@dataclass(frozen=True)
class TrackEvent:
    name: str | None = None
    artist: str | None = None
    album: str | None = None
    image_url: str | None = None
    duration_seconds: float | None = None
    queue_item_id: str | None = None


@dataclass(frozen=True)
class TransportStateEvent:
    playing: bool
    position_seconds: float = 0


@dataclass(frozen=True)
class VolumeEvent:
    percentage: float


# ── Sources ──

@dataclass(frozen=True)
class Source:
    id: str
    display_name: str


def parse_sources(payload: dict | None) -> list[Source]:
    """Shape the raw /BeoZone/Zone/Sources catalog into a list of Sources.

    The device returns ``{"sources": [[key, {"friendlyName": ..., "sourceType":
    {"type": ...}}], ...]}``.  Entries missing a name or type are skipped, and
    only the first entry for each source type is kept.
    """
    sources: list[Source] = []
    if not payload:
        return sources

    seen: set[str] = set()
    for entry in payload.get("sources") or []:
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            continue
        info = entry[1]
        if not isinstance(info, dict):
            continue
        name = info.get("friendlyName")
        source_type = info.get("sourceType")
        if name is None or not isinstance(source_type, dict) or "type" not in source_type:
            continue
        source_id = str(source_type["type"])
        if source_id in seen:
            logger.debug("Skipping duplicate source %s (%s)", source_id, name)
            continue
        seen.add(source_id)
        sources.append(Source(id=source_id, display_name=str(name)))
    return sources
