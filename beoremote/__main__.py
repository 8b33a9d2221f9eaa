#!/usr/bin/env python3
"""
beoremote — follow a BeoNetRemote device from the command line.

Connects, logs every track / state / volume / availability event, and runs
until SIGINT or SIGTERM.

    beoremote --host 192.168.1.50
    python -m beoremote --verbose      # host from config.json device.host
"""

import argparse
import asyncio
import logging
import signal

from .client import DeviceClient
from .errors import BeoRemoteError

logger = logging.getLogger("beoremote")


def _log_track(track):
    logger.info("Track: %s — %s (%s)", track.artist or "—", track.name or "—",
                track.album or "—")


def _log_state(state):
    logger.info("State: %s at %ss", "playing" if state.playing else "paused",
                state.position_seconds)


def _log_volume(volume):
    logger.info("Volume: %.0f%%", volume.percentage * 100)


async def run(client: DeviceClient):
    client.subscribe("track", _log_track)
    client.subscribe("state", _log_state)
    client.subscribe("volume", _log_volume)
    client.subscribe("available", lambda: logger.info("Device available"))
    client.subscribe("unavailable", lambda: logger.warning("Device unavailable"))
    client.subscribe("error", lambda e: logger.debug("Bad notification: %s", e))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await client.connect()
        for source in client.sources:
            logger.info("Source: %s (%s)", source.display_name, source.id)
        await stop_event.wait()
    finally:
        await client.disconnect()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Follow a BeoNetRemote device")
    parser.add_argument("--host", help="device address (default: config device.host)")
    parser.add_argument("--port", type=int, help="device port (default: 8080)")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        client = DeviceClient.from_config(host=args.host, port=args.port)
    except ValueError as e:
        parser.error(str(e))

    try:
        asyncio.run(run(client))
    except BeoRemoteError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
