# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
NotificationSession — one long-lived GET on /BeoNotify/Notifications.

    IDLE ──connect()──▶ CONNECTING ──headers──▶ STREAMING ──close()──▶ CLOSED

A session is used once.  Reconnecting means closing this session and
building a new one, so no buffered bytes survive from one TCP connection to
the next.  Once a session is CLOSED nothing it reads is dispatched, even if
chunks are already in flight.
"""

import asyncio
import enum
import logging

import aiohttp

from .errors import AlreadyConnectedError, ParseError, TransportError
from .events import ERROR, EventBus, classify
from .framing import NotificationFramer
from .models import Address, NotificationEnvelope
from .volume import DEFAULT_SCALE, VolumeScale

logger = logging.getLogger(__name__)

NOTIFY_PATH = "/BeoNotify/Notifications"
CONNECT_TIMEOUT = 10.0


class SessionState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"


class NotificationSession:
    """Streams, frames and classifies device notifications onto an EventBus."""

    def __init__(self, http: aiohttp.ClientSession, address: Address, bus: EventBus,
                 scale: VolumeScale = DEFAULT_SCALE,
                 connect_timeout: float = CONNECT_TIMEOUT):
        self._http = http
        self._address = address
        self._bus = bus
        self._scale = scale
        self._connect_timeout = connect_timeout
        self._state = SessionState.IDLE
        self._response: aiohttp.ClientResponse | None = None
        self._reader_task: asyncio.Task | None = None
        self._framer: NotificationFramer | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_streaming(self) -> bool:
        return self._state is SessionState.STREAMING

    async def connect(self):
        """Open the notification stream and start dispatching.

        Raises:
            AlreadyConnectedError: the session is connecting or streaming.
            TransportError: the stream could not be opened.
        """
        if self._state in (SessionState.CONNECTING, SessionState.STREAMING):
            raise AlreadyConnectedError(f"Session to {self._address} is {self._state.value}")

        self._state = SessionState.CONNECTING
        url = f"{self._address.base_url}{NOTIFY_PATH}"
        logger.info("Opening notification stream %s", url)

        try:
            resp = await self._http.get(
                url,
                headers={"Content-Type": "application/json"},
                # The body never ends; only bound the connect phase
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=self._connect_timeout,
                                              sock_read=None),
            )
        except asyncio.CancelledError:
            self._state = SessionState.CLOSED
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._state = SessionState.CLOSED
            raise TransportError(f"Notification stream to {self._address} failed: {e}",
                                 path=NOTIFY_PATH) from e

        if self._state is not SessionState.CONNECTING:
            # close() raced the request
            resp.close()
            return

        try:
            resp.raise_for_status()
        except aiohttp.ClientResponseError as e:
            resp.close()
            self._state = SessionState.CLOSED
            raise TransportError(
                f"Notification stream to {self._address} refused: {e.status} {e.message}",
                path=NOTIFY_PATH, status=e.status) from e

        self._response = resp
        self._framer = NotificationFramer(on_error=self._report)
        self._state = SessionState.STREAMING
        self._reader_task = asyncio.create_task(self._read_loop(resp))
        logger.info("Notification stream to %s established", self._address)

    def close(self):
        """Stop dispatching immediately.  Safe from any state."""
        if self._state is not SessionState.CLOSED:
            logger.info("Closing notification stream to %s", self._address)
        self._state = SessionState.CLOSED
        self._framer = None
        if self._reader_task and self._reader_task is not asyncio.current_task():
            self._reader_task.cancel()
        if self._response is not None:
            self._response.close()
            self._response = None

    async def disconnect(self):
        """close(), then wait for the reader task to finish."""
        self.close()
        task, self._reader_task = self._reader_task, None
        if task and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ── Reading ──

    async def _read_loop(self, resp: aiohttp.ClientResponse):
        try:
            async for chunk in resp.content.iter_any():
                if self._state is not SessionState.STREAMING:
                    break
                self._handle_chunk(chunk)
            else:
                logger.warning("Notification stream from %s ended", self._address)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if self._state is SessionState.STREAMING:
                logger.warning("Notification stream from %s dropped: %s", self._address, e)
        finally:
            if self._state is SessionState.STREAMING:
                # Device hung up; liveness monitoring rebuilds the session
                self._state = SessionState.CLOSED
                self._framer = None
                resp.close()
                if self._response is resp:
                    self._response = None

    def _handle_chunk(self, chunk: bytes):
        framer = self._framer
        if self._state is not SessionState.STREAMING or framer is None:
            logger.debug("Discarding %d bytes on %s session", len(chunk), self._state.value)
            return
        for envelope in framer.feed(chunk):
            if self._state is not SessionState.STREAMING:
                return
            self._dispatch(envelope)

    def _dispatch(self, envelope: NotificationEnvelope):
        try:
            classified = classify(envelope, self._scale)
        except ParseError as e:
            logger.warning("Rejected %s/%s notification: %s", envelope.kind, envelope.type, e)
            self._report(e)
            return

        if classified is None:
            logger.debug("Ignoring notification %s/%s", envelope.kind, envelope.type)
            return

        name, event = classified
        logger.debug("Notification %s/%s -> %s", envelope.kind, envelope.type, name)
        self._bus.publish(name, event)

    def _report(self, error: ParseError):
        if self._state is SessionState.STREAMING:
            self._bus.publish(ERROR, error)
