"""Test fixtures for beoremote tests."""

import asyncio
import json
from collections.abc import AsyncGenerator, Callable

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from beoremote.framing import NOTIFY_DELIMITER


def notification(kind: str, type_: str, data: dict | None = None, timestamp: int = 0) -> bytes:
    """Encode one notification frame exactly as the device sends it."""
    body = {"notification": {"timestamp": timestamp, "type": type_, "kind": kind,
                             "data": data or {}}}
    return json.dumps(body, ensure_ascii=False).encode("utf-8") + NOTIFY_DELIMITER


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until it is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("Timed out waiting for condition")
        await asyncio.sleep(0.01)


class FakeDevice:
    """In-process BeoNetRemote device built on aiohttp.web."""

    def __init__(self) -> None:
        self.host = ""
        self.port = 0
        self.down = False
        self.level = 45
        self.muted = False
        self.broken_sources = False
        self.play_pointer: dict = {"playPointer": {"position": 12}}
        self.sources: dict = {
            "sources": [
                ["spotify:1", {"friendlyName": "Spotify", "sourceType": {"type": "SPOTIFY"}}],
                ["radio:1", {"friendlyName": "TuneIn", "sourceType": {"type": "TUNEIN"}}],
            ]
        }
        self.requests: list[tuple[str, str, object]] = []
        self.stream_count = 0
        self._streams: list[web.StreamResponse] = []
        self._closed = asyncio.Event()

        app = web.Application()
        app.router.add_get("/BeoZone/Zone", self._zone)
        app.router.add_route("*", "/BeoZone/Zone/Sound/Volume/Speaker/Level", self._level)
        app.router.add_route("*", "/BeoZone/Zone/Sound/Volume/Speaker/Muted", self._muted)
        app.router.add_route("*", "/BeoZone/Zone/PlayQueue/PlayPointer", self._pointer)
        app.router.add_post("/BeoZone/Zone/Stream/{command}", self._stream_command)
        app.router.add_get("/BeoZone/Zone/Sources", self._sources)
        app.router.add_post("/BeoZone/Zone/ActiveSourceType", self._active_source)
        app.router.add_get("/BeoNotify/Notifications", self._notifications)
        self.app = app

    async def _record(self, request: web.Request) -> object:
        body = None
        if request.can_read_body:
            body = await request.json()
        self.requests.append((request.method, request.path, body))
        return body

    def _unavailable(self) -> web.Response | None:
        if self.down:
            return web.Response(status=503, reason="Service Unavailable")
        return None

    async def _zone(self, request: web.Request) -> web.Response:
        await self._record(request)
        return self._unavailable() or web.json_response({"zone": {"name": "Living Room"}})

    async def _level(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        if request.method == "PUT":
            self.level = body["level"]
            return web.Response()
        return web.json_response({"level": self.level})

    async def _muted(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        if request.method == "PUT":
            self.muted = body["muted"]
            return web.Response()
        return web.json_response({"muted": self.muted})

    async def _pointer(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        if request.method == "POST":
            self.play_pointer = body
            return web.Response()
        return web.json_response(self.play_pointer)

    async def _stream_command(self, request: web.Request) -> web.Response:
        await self._record(request)
        if request.match_info["command"] not in ("Play", "Pause", "Backward", "Forward"):
            return web.Response(status=404)
        return web.Response()

    async def _sources(self, request: web.Request) -> web.Response:
        await self._record(request)
        if self.broken_sources:
            return web.Response(status=500, reason="Internal Server Error")
        return web.json_response(self.sources)

    async def _active_source(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.Response()

    async def _notifications(self, request: web.Request) -> web.StreamResponse:
        await self._record(request)
        refused = self._unavailable()
        if refused:
            return refused
        resp = web.StreamResponse()
        resp.content_type = "application/json"
        resp.enable_chunked_encoding()
        await resp.prepare(request)
        # Flush headers with an empty frame
        await resp.write(NOTIFY_DELIMITER)
        self.stream_count += 1
        self._streams.append(resp)
        closed = self._closed
        try:
            while not closed.is_set():
                if request.transport is None or request.transport.is_closing():
                    break
                try:
                    await asyncio.wait_for(closed.wait(), 0.02)
                except asyncio.TimeoutError:
                    pass
        finally:
            if resp in self._streams:
                self._streams.remove(resp)
        return resp

    @property
    def open_streams(self) -> int:
        return len(self._streams)

    async def push(self, raw: bytes) -> None:
        """Write raw bytes to every open notification stream."""
        for resp in list(self._streams):
            try:
                await resp.write(raw)
            except (ConnectionResetError, RuntimeError):
                self._streams.remove(resp)

    async def notify(self, kind: str, type_: str, data: dict | None = None) -> None:
        await self.push(notification(kind, type_, data))

    def hang_up(self) -> None:
        """End every open notification stream."""
        self._closed.set()
        self._closed = asyncio.Event()

    def paths(self, method: str | None = None) -> list[str]:
        return [path for m, path, _ in self.requests if method is None or m == method]


@pytest.fixture
async def device() -> AsyncGenerator[FakeDevice, None]:
    """Fake device served on a random local port."""
    fake = FakeDevice()
    server = TestServer(fake.app)
    await server.start_server()
    fake.host = server.host
    fake.port = server.port
    try:
        yield fake
    finally:
        fake.hang_up()
        await server.close()


@pytest.fixture
async def http() -> AsyncGenerator[aiohttp.ClientSession, None]:
    session = aiohttp.ClientSession()
    try:
        yield session
    finally:
        await session.close()
