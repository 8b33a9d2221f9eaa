"""
beoremote — async client for BeoNetRemote (BeoPlay / BeoSound) devices.

Streams now-playing, transport and volume notifications from the device,
issues transport/volume/source commands, and reconnects on its own when the
device drops off the network.
"""

from .client import DeviceClient
from .control import ControlChannel
from .errors import AlreadyConnectedError, BeoRemoteError, ParseError, TransportError
from .events import EventBus, Subscription
from .framing import NotificationFramer
from .liveness import LivenessMonitor
from .models import (
    Address,
    NotificationEnvelope,
    Source,
    TrackEvent,
    TransportStateEvent,
    VolumeEvent,
)
from .session import NotificationSession, SessionState
from .volume import VolumeScale, to_device_level, to_percentage

__all__ = [
    "Address",
    "AlreadyConnectedError",
    "BeoRemoteError",
    "ControlChannel",
    "DeviceClient",
    "EventBus",
    "LivenessMonitor",
    "NotificationEnvelope",
    "NotificationFramer",
    "NotificationSession",
    "ParseError",
    "SessionState",
    "Source",
    "Subscription",
    "TrackEvent",
    "TransportError",
    "TransportStateEvent",
    "VolumeEvent",
    "VolumeScale",
    "to_device_level",
    "to_percentage",
]
