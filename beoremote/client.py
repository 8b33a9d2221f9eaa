# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
DeviceClient — the one object callers use to talk to a BeoNetRemote device.

It owns the Address, the notification session, the liveness monitor and
the control channel, and is the only place that swaps sessions.

Usage:
    async with DeviceClient("192.168.1.50") as client:
        client.subscribe("track", lambda track: print(track.name))
        await client.set_volume(0.3)
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from .config import cfg
from .control import KEEP_ALIVE_INTERVAL, REQUEST_TIMEOUT, ControlChannel
from .errors import AlreadyConnectedError, BeoRemoteError, TransportError
from .events import EventBus, Subscription
from .liveness import LivenessMonitor
from .models import DEFAULT_PORT, Address, Source, parse_sources
from .session import NotificationSession, SessionState
from .volume import DEFAULT_SCALE, VolumeScale

logger = logging.getLogger(__name__)


class DeviceClient:
    """Connection lifecycle, events and commands for one device."""

    def __init__(self, host: str, port: int = DEFAULT_PORT, *,
                 http: aiohttp.ClientSession | None = None,
                 keepalive_interval: float = KEEP_ALIVE_INTERVAL,
                 request_timeout: float = REQUEST_TIMEOUT,
                 scale: VolumeScale = DEFAULT_SCALE):
        self.address = Address(host, port)
        self.scale = scale
        self.keepalive_interval = keepalive_interval
        self.request_timeout = request_timeout
        self._http = http
        self._owns_http = http is None
        self._bus = EventBus()
        self._control: ControlChannel | None = None
        self._session: NotificationSession | None = None
        self._monitor: LivenessMonitor | None = None
        self._lock = asyncio.Lock()
        self._sources: list[Source] = []
        self._closed = False

    @classmethod
    def from_config(cls, **kwargs) -> "DeviceClient":
        """Build a client from config.json (device.*, keepalive.*, request.*)."""
        host = kwargs.pop("host", None) or cfg("device", "host")
        if not host:
            raise ValueError("No device host given and device.host is not configured")
        port = kwargs.pop("port", None) or int(cfg("device", "port", default=DEFAULT_PORT))
        kwargs.setdefault("keepalive_interval",
                          float(cfg("keepalive", "interval", default=KEEP_ALIVE_INTERVAL)))
        kwargs.setdefault("request_timeout",
                          float(cfg("request", "timeout", default=REQUEST_TIMEOUT)))
        return cls(host, port, **kwargs)

    # ── State ──

    @property
    def is_connected(self) -> bool:
        return self._session is not None and self._session.state in (
            SessionState.CONNECTING, SessionState.STREAMING)

    @property
    def is_streaming(self) -> bool:
        return self._session is not None and self._session.is_streaming

    @property
    def available(self) -> bool:
        return self._monitor.available if self._monitor else self.is_streaming

    @property
    def sources(self) -> list[Source]:
        return list(self._sources)

    def set_address(self, host: str, port: int | None = None):
        """Point the client at a new address without touching the live session."""
        self.address.host = host
        if port is not None:
            self.address.port = port
        logger.info("Device address changed to %s", self.address)

    # ── Events ──

    def subscribe(self, event: str, handler: Callable) -> Subscription:
        """Register *handler* for track, state, volume, available, unavailable or error."""
        return self._bus.subscribe(event, handler)

    # ── Lifecycle ──

    def _ensure_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            if self._closed:
                raise TransportError(f"Client for {self.address} is disconnected")
            self._http = aiohttp.ClientSession()
            self._owns_http = True
            self._control = None
        return self._http

    @property
    def control(self) -> ControlChannel:
        if self._control is None:
            self._control = ControlChannel(
                self._ensure_http(), self.address, self.scale,
                timeout=self.request_timeout,
                probe_timeout=self.keepalive_interval / 1.5)
        return self._control

    def _new_session(self) -> NotificationSession:
        return NotificationSession(self._ensure_http(), self.address, self._bus,
                                   self.scale, connect_timeout=self.request_timeout)

    async def connect(self):
        """Open the notification stream, start liveness probing, load sources.

        Raises:
            AlreadyConnectedError: already connecting or streaming.
            TransportError: the notification stream could not be opened.
        """
        async with self._lock:
            if self.is_connected:
                raise AlreadyConnectedError(f"Already connected to {self.address}")
            self._closed = False
            # A dropped stream leaves its monitor running
            await self._teardown()
            session = self._new_session()
            self._session = session
            await session.connect()
            if self._closed or not session.is_streaming:
                logger.info("Connect to %s abandoned, client was disconnected", self.address)
                return

            self._monitor = LivenessMonitor(
                probe=lambda: self.control.probe(),
                reconnect=self._reconnect,
                is_streaming=lambda: self.is_streaming,
                bus=self._bus,
                interval=self.keepalive_interval,
            )
            self._monitor.start()

        await self.refresh_sources()

    async def disconnect(self):
        """Stop everything.  Safe from any state; no events are emitted afterwards.

        An owned HTTP session is closed too, so commands raise TransportError
        until the next connect().
        """
        self._closed = True
        if self._monitor:
            self._monitor.cancel()
        if self._session:
            self._session.close()

        http = None
        async with self._lock:
            await self._teardown()
            if self._owns_http:
                http, self._http = self._http, None
                self._control = None
        if http is not None:
            await http.close()

    async def _teardown(self):
        """Stop the monitor and the session.  Caller holds the lock."""
        monitor, self._monitor = self._monitor, None
        if monitor:
            await monitor.stop()
        session, self._session = self._session, None
        if session:
            await session.disconnect()

    async def _reconnect(self):
        """Tear down the current session and build a fresh one."""
        async with self._lock:
            old, self._session = self._session, None
            if old:
                await old.disconnect()
            logger.info("Reconnecting to %s", self.address)
            session = self._new_session()
            self._session = session
            await session.connect()

    async def __aenter__(self) -> "DeviceClient":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    # ── Sources ──

    async def refresh_sources(self) -> list[Source]:
        try:
            self._sources = parse_sources(await self.control.list_sources())
            logger.info("Loaded %d sources from %s", len(self._sources), self.address)
        except BeoRemoteError as e:
            logger.warning("Could not load sources from %s: %s", self.address, e)
        return self.sources

    # ── Commands ──

    async def play(self):
        await self.control.play()

    async def pause(self):
        await self.control.pause()

    async def previous(self):
        await self.control.previous()

    async def next(self):
        await self.control.next()

    async def get_volume(self) -> float:
        return await self.control.get_volume()

    async def set_volume(self, percentage: float):
        await self.control.set_volume(percentage)

    async def get_muted(self) -> bool:
        return await self.control.get_muted()

    async def set_muted(self, muted: bool):
        await self.control.set_muted(muted)

    async def get_position(self) -> dict:
        return await self.control.get_position()

    async def set_position(self, seconds: float = 0):
        await self.control.set_position(seconds)

    async def list_sources(self) -> dict:
        return await self.control.list_sources()

    async def set_active_source(self, source_id: str):
        await self.control.set_active_source(source_id)
