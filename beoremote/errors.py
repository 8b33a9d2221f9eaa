"""
Exception taxonomy for the BeoNetRemote client.

Only TransportError and AlreadyConnectedError ever reach a caller.
ParseError is raised while decoding notifications and is always contained
inside the notification session (logged and published as an ``error``
event).  Device unavailability is never an exception; it surfaces as the
``unavailable`` event.
"""


class BeoRemoteError(Exception):
    """Base class for all client errors."""


class TransportError(BeoRemoteError):
    """An HTTP call to the device failed (network error or non-2xx status)."""

    def __init__(self, message: str, path: str = "", status: int | None = None):
        super().__init__(message)
        self.path = path
        self.status = status


class ParseError(BeoRemoteError):
    """A framed notification could not be decoded or classified."""

    def __init__(self, message: str, payload: str = ""):
        super().__init__(message)
        self.payload = payload


class AlreadyConnectedError(BeoRemoteError):
    """connect() was called while a session is already connecting or streaming."""
