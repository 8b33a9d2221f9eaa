# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
LivenessMonitor — periodic probe that owns device availability.

Every *interval* seconds the device is probed:

  probe ok,   was available    → nothing (steady state is silent); if the
                                 notification stream died, rebuild it quietly
  probe fails, was available   → "unavailable", tear down + rebuild session
  probe fails, was unavailable → nothing (still down)
  probe ok,   was unavailable  → rebuild session if it is not streaming,
                                 then "available"

Retries are unbounded: the probe keeps running as long as the monitor does.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .errors import BeoRemoteError, TransportError
from .events import AVAILABLE, UNAVAILABLE, EventBus

logger = logging.getLogger(__name__)


class LivenessMonitor:
    def __init__(self, probe: Callable[[], Awaitable[None]],
                 reconnect: Callable[[], Awaitable[None]],
                 is_streaming: Callable[[], bool],
                 bus: EventBus,
                 interval: float = 5.0):
        self._probe = probe
        self._reconnect = reconnect
        self._is_streaming = is_streaming
        self._bus = bus
        self.interval = interval
        self.available = True
        self._reconnecting = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def reconnecting(self) -> bool:
        return self._reconnecting

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Liveness monitor started (interval=%.1fs)", self.interval)

    def cancel(self):
        """Stop the timer without waiting.  No probe result is acted on afterwards."""
        if self._task:
            self._task.cancel()

    async def stop(self):
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        if task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Liveness monitor stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.check()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Liveness check failed unexpectedly")

    async def check(self):
        """Run one probe and act on the result."""
        if self._reconnecting:
            logger.debug("Reconnect in progress, skipping probe")
            return

        try:
            await self._probe()
        except TransportError as e:
            await self._on_failure(e)
        else:
            await self._on_success()

    async def _on_failure(self, error: TransportError):
        if not self.available:
            logger.debug("Device still unreachable: %s", error)
            return

        self.available = False
        logger.warning("Device unreachable: %s", error)
        self._bus.publish(UNAVAILABLE)
        await self._rebuild()

    async def _on_success(self):
        if self.available:
            if not self._is_streaming():
                logger.info("Notification stream is down, reconnecting")
                await self._rebuild()
            return

        if not self._is_streaming() and not await self._rebuild():
            return

        self.available = True
        logger.info("Device reachable again")
        self._bus.publish(AVAILABLE)

    async def _rebuild(self) -> bool:
        if self._reconnecting:
            return False
        self._reconnecting = True
        try:
            await self._reconnect()
            return True
        except BeoRemoteError as e:
            logger.warning("Reconnect failed, retrying after next probe: %s", e)
            return False
        finally:
            self._reconnecting = False
