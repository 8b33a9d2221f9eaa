# BeoSound 5c
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
Incremental framing of the BeoNotify notification stream.

The device never terminates the /BeoNotify/Notifications response; it keeps
writing JSON objects separated by a blank line (CRLF CRLF).  Chunk boundaries
from the HTTP layer have nothing to do with message boundaries, so bytes are
buffered until a delimiter shows up.

Bytes are only decoded once a whole frame is available, so a multi-byte UTF-8
character split across two chunks still decodes correctly.
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterator

from .errors import ParseError
from .models import NotificationEnvelope

logger = logging.getLogger(__name__)

NOTIFY_DELIMITER = b"\r\n\r\n"


class NotificationFramer:
    """Turn arbitrary byte chunks into NotificationEnvelopes.

    One framer belongs to exactly one stream.  It is never reset; a new
    connection gets a new framer.
    """

    def __init__(self, on_error: Callable[[ParseError], None] | None = None):
        self._buffer = bytearray()
        self._on_error = on_error

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet forming a complete frame."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> Iterator[NotificationEnvelope]:
        """Append *chunk*; iterate the result for every now-complete envelope.

        The chunk is buffered immediately; frames are extracted as the
        result is iterated.  Malformed frames are reported through
        ``on_error`` and skipped.
        """
        self._buffer.extend(chunk)
        return self._drain()

    def _drain(self) -> Iterator[NotificationEnvelope]:
        while True:
            index = self._buffer.find(NOTIFY_DELIMITER)
            if index == -1:
                return
            raw = bytes(self._buffer[:index])
            del self._buffer[:index + len(NOTIFY_DELIMITER)]

            if not raw.strip():
                continue

            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                self._report(ParseError(f"Notification is not UTF-8: {e}",
                                        raw.decode("utf-8", errors="replace")))
                continue

            try:
                envelope = NotificationEnvelope.from_json(text)
            except ParseError as e:
                self._report(e)
                continue
            yield envelope

    async def frames(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[NotificationEnvelope]:
        """Lazily frame an async byte stream.  Not restartable."""
        async for chunk in chunks:
            for envelope in self.feed(chunk):
                yield envelope

    def _report(self, error: ParseError):
        logger.warning("Skipping malformed notification: %s (%.200r)", error, error.payload)
        if self._on_error:
            self._on_error(error)
