# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
ControlChannel — request/response commands against the BeoZone REST API.

BeoNetRemote HTTP API (port 8080, JSON bodies):
  GET  /BeoZone/Zone                              — zone info (liveness probe)
  GET  /BeoZone/Zone/Sound/Volume/Speaker/Level   — {"level": N}
  PUT  /BeoZone/Zone/Sound/Volume/Speaker/Level   — {"level": N}
  GET  /BeoZone/Zone/Sound/Volume/Speaker/Muted   — {"muted": bool}
  PUT  /BeoZone/Zone/Sound/Volume/Speaker/Muted   — {"muted": bool}
  GET  /BeoZone/Zone/PlayQueue/PlayPointer        — current play pointer
  POST /BeoZone/Zone/PlayQueue/PlayPointer        — {"playPointer": {"position": s}}
  POST /BeoZone/Zone/Stream/Play|Pause|Backward|Forward
  GET  /BeoZone/Zone/Sources                      — source catalog
  POST /BeoZone/Zone/ActiveSourceType             — {"sourceType": {"type": id}}

Every call is independent: no retries, no shared state except the Address,
which is read once per call so a concurrent address change never splits a
request across two hosts.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from .errors import TransportError
from .models import Address
from .volume import DEFAULT_SCALE, VolumeScale

logger = logging.getLogger(__name__)

KEEP_ALIVE_INTERVAL = 5.0      # seconds between liveness probes
REQUEST_TIMEOUT = 10.0

PROBE_PATH = "/BeoZone/Zone"
VOLUME_LEVEL_PATH = "/BeoZone/Zone/Sound/Volume/Speaker/Level"
VOLUME_MUTED_PATH = "/BeoZone/Zone/Sound/Volume/Speaker/Muted"
PLAY_POINTER_PATH = "/BeoZone/Zone/PlayQueue/PlayPointer"
PLAY_PATH = "/BeoZone/Zone/Stream/Play"
PAUSE_PATH = "/BeoZone/Zone/Stream/Pause"
BACKWARD_PATH = "/BeoZone/Zone/Stream/Backward"
FORWARD_PATH = "/BeoZone/Zone/Stream/Forward"
SOURCES_PATH = "/BeoZone/Zone/Sources"
ACTIVE_SOURCE_PATH = "/BeoZone/Zone/ActiveSourceType"


class ControlChannel:
    """Imperative commands for one device."""

    def __init__(self, http: aiohttp.ClientSession, address: Address,
                 scale: VolumeScale = DEFAULT_SCALE,
                 timeout: float = REQUEST_TIMEOUT,
                 probe_timeout: float = KEEP_ALIVE_INTERVAL / 1.5):
        self._http = http
        self._address = address
        self.scale = scale
        self.timeout = timeout
        self.probe_timeout = probe_timeout

    async def _call(self, method: str, path: str, body: dict | None = None,
                    timeout: float | None = None) -> Any:
        """Issue one request.  Returns the decoded JSON body, or None."""
        url = f"{self._address.base_url}{path}"
        kwargs: dict[str, Any] = {
            "headers": {"Content-Type": "application/json"},
            "timeout": aiohttp.ClientTimeout(total=timeout or self.timeout),
        }
        if body is not None:
            kwargs["json"] = body

        try:
            async with self._http.request(method, url, **kwargs) as resp:
                resp.raise_for_status()
                if resp.content_type == "application/json":
                    return await resp.json()
                return None
        except asyncio.TimeoutError as e:
            raise TransportError(f"{method} {path} timed out", path=path) from e
        except (aiohttp.ContentTypeError, ValueError) as e:
            raise TransportError(f"{method} {path} returned invalid JSON: {e}", path=path) from e
        except aiohttp.ClientResponseError as e:
            raise TransportError(f"{method} {path} failed: {e.status} {e.message}",
                                 path=path, status=e.status) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} {path} failed: {e}", path=path) from e

    @staticmethod
    def _field(payload: Any, key: str, path: str) -> Any:
        if not isinstance(payload, dict) or key not in payload:
            raise TransportError(f"GET {path} response has no '{key}'", path=path)
        return payload[key]

    # ── Liveness ──

    async def probe(self) -> None:
        """Lightweight GET used only to check that the device answers."""
        await self._call("GET", PROBE_PATH, timeout=self.probe_timeout)

    # ── Volume ──

    async def get_volume(self) -> float:
        payload = await self._call("GET", VOLUME_LEVEL_PATH)
        level = self._field(payload, "level", VOLUME_LEVEL_PATH)
        if isinstance(level, bool) or not isinstance(level, (int, float)):
            raise TransportError(f"GET {VOLUME_LEVEL_PATH} returned a non-numeric level: {level!r}",
                                 path=VOLUME_LEVEL_PATH)
        return self.scale.to_percentage(level)

    async def set_volume(self, percentage: float) -> None:
        level = self.scale.to_device_level(percentage)
        logger.debug("Volume %.3f -> level %d", percentage, level)
        await self._call("PUT", VOLUME_LEVEL_PATH, {"level": level})

    async def get_muted(self) -> bool:
        payload = await self._call("GET", VOLUME_MUTED_PATH)
        return bool(self._field(payload, "muted", VOLUME_MUTED_PATH))

    async def set_muted(self, muted: bool) -> None:
        await self._call("PUT", VOLUME_MUTED_PATH, {"muted": bool(muted)})

    # ── Play queue position ──

    async def get_position(self) -> dict:
        """Return the raw play pointer as reported by the device."""
        return await self._call("GET", PLAY_POINTER_PATH) or {}

    async def set_position(self, seconds: float = 0) -> None:
        await self._call("POST", PLAY_POINTER_PATH, {"playPointer": {"position": seconds}})

    # ── Transport ──

    async def play(self) -> None:
        await self._call("POST", PLAY_PATH)

    async def pause(self) -> None:
        await self._call("POST", PAUSE_PATH)

    async def previous(self) -> None:
        await self._call("POST", BACKWARD_PATH)

    async def next(self) -> None:
        await self._call("POST", FORWARD_PATH)

    # ── Sources ──

    async def list_sources(self) -> dict:
        """Return the raw source catalog; see models.parse_sources()."""
        return await self._call("GET", SOURCES_PATH) or {}

    async def set_active_source(self, source_id: str) -> None:
        await self._call("POST", ACTIVE_SOURCE_PATH, {"sourceType": {"type": source_id}})
