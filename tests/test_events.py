"""Tests for notification classification and the event bus."""

import asyncio

import pytest

from beoremote.errors import ParseError
from beoremote.events import (
    AVAILABLE,
    STATE,
    TRACK,
    VOLUME,
    EventBus,
    classify,
)
from beoremote.models import NotificationEnvelope, TrackEvent, TransportStateEvent, VolumeEvent
from beoremote.volume import VolumeScale


def _envelope(kind: str, type_: str, data: dict | None = None) -> NotificationEnvelope:
    return NotificationEnvelope(timestamp=0, type=type_, kind=kind, data=data or {})


class TestClassify:
    """Tests for (kind, type) dispatch."""

    def test_volume(self) -> None:
        """Test that renderer/VOLUME becomes a VolumeEvent."""
        result = classify(_envelope("renderer", "VOLUME", {"speaker": {"level": 45}}))
        assert result == (VOLUME, VolumeEvent(percentage=0.5))

    def test_volume_uses_scale(self) -> None:
        """Test that a custom scale is applied."""
        result = classify(_envelope("renderer", "VOLUME", {"speaker": {"level": 50}}),
                          VolumeScale(0, 100))
        assert result == (VOLUME, VolumeEvent(percentage=0.5))

    def test_volume_without_level(self) -> None:
        """Test that a VOLUME notification without a level is a parse error."""
        with pytest.raises(ParseError):
            classify(_envelope("renderer", "VOLUME", {"speaker": {}}))

    def test_track(self) -> None:
        """Test a full now-playing notification."""
        data = {
            "name": "Song",
            "artist": "Artist",
            "album": "Album",
            "duration": 215,
            "playQueueItemId": "plid-12",
            "trackImage": [{"url": "http://img/track.jpg", "size": "large"}],
            "albumImage": [{"url": "http://img/album.jpg"}],
        }
        result = classify(_envelope("playing", "NOW_PLAYING_STORED_MUSIC", data))
        assert result == (TRACK, TrackEvent(
            name="Song", artist="Artist", album="Album",
            image_url="http://img/track.jpg", duration_seconds=215,
            queue_item_id="plid-12",
        ))

    def test_track_falls_back_to_album_image(self) -> None:
        """Test that the album image is used without a track image."""
        data = {"trackImage": [], "albumImage": [{"url": "http://img/album.jpg"}]}
        _, track = classify(_envelope("playing", "NOW_PLAYING_STORED_MUSIC", data))
        assert track.image_url == "http://img/album.jpg"

    def test_track_defaults(self) -> None:
        """Test that absent or empty track fields become None."""
        data = {"name": "", "duration": 0}
        _, track = classify(_envelope("playing", "NOW_PLAYING_STORED_MUSIC", data))
        assert track == TrackEvent()

    def test_progress(self) -> None:
        """Test that PROGRESS_INFORMATION becomes a transport state."""
        result = classify(_envelope("playing", "PROGRESS_INFORMATION",
                                    {"position": 42, "state": "play"}))
        assert result == (STATE, TransportStateEvent(playing=True, position_seconds=42))

    def test_progress_defaults(self) -> None:
        """Test that a bare progress notification means paused at 0."""
        _, state = classify(_envelope("playing", "PROGRESS_INFORMATION", {"state": "pause"}))
        assert state == TransportStateEvent(playing=False, position_seconds=0)

    @pytest.mark.parametrize(
        ("kind", "type_"),
        [
            ("renderer", "MUTE"),
            ("playing", "NOW_PLAYING_NET_RADIO"),
            ("source", "SOURCE"),
            ("playing", "VOLUME"),
        ],
    )
    def test_unknown_pairs_dropped(self, kind: str, type_: str) -> None:
        """Test that unknown (kind, type) pairs are ignored, not errors."""
        assert classify(_envelope(kind, type_, {"speaker": {"level": 3}})) is None


class TestEventBus:
    """Tests for EventBus and Subscription."""

    def test_publish_in_order(self) -> None:
        """Test that handlers receive events in publish order."""
        bus = EventBus()
        received: list[int] = []
        bus.subscribe(VOLUME, lambda e: received.append(e))
        for i in range(5):
            bus.publish(VOLUME, i)
        assert received == [0, 1, 2, 3, 4]

    def test_no_payload_event(self) -> None:
        """Test that availability handlers are called without arguments."""
        bus = EventBus()
        calls: list[str] = []
        bus.subscribe(AVAILABLE, lambda: calls.append("up"))
        bus.publish(AVAILABLE)
        assert calls == ["up"]

    def test_cancel_subscription(self) -> None:
        """Test that a cancelled subscription stops receiving."""
        bus = EventBus()
        received: list[int] = []
        subscription = bus.subscribe(VOLUME, received.append)
        bus.publish(VOLUME, 1)
        subscription.cancel()
        subscription.cancel()
        bus.publish(VOLUME, 2)
        assert received == [1]
        assert subscription.active is False

    def test_same_handler_twice(self) -> None:
        """Test that handles are independent even for the same callable."""
        bus = EventBus()
        received: list[int] = []
        first = bus.subscribe(VOLUME, received.append)
        bus.subscribe(VOLUME, received.append)
        first.cancel()
        bus.publish(VOLUME, 7)
        assert received == [7]

    def test_clear(self) -> None:
        """Test that clear() revokes every subscription."""
        bus = EventBus()
        received: list[int] = []
        bus.subscribe(VOLUME, received.append)
        bus.subscribe(STATE, received.append)
        bus.clear()
        bus.publish(VOLUME, 1)
        bus.publish(STATE, 2)
        assert received == []

    def test_failing_handler_does_not_stop_others(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that one raising handler is logged and the rest still run."""
        bus = EventBus()
        received: list[int] = []

        def boom(_: int) -> None:
            raise RuntimeError("boom")

        bus.subscribe(VOLUME, boom)
        bus.subscribe(VOLUME, received.append)
        bus.publish(VOLUME, 1)
        assert received == [1]
        assert "Listener for 'volume' failed" in caplog.text

    def test_unknown_event(self) -> None:
        """Test that subscribing to an unknown event fails."""
        with pytest.raises(ValueError):
            EventBus().subscribe("bogus", print)

    async def test_async_handler(self) -> None:
        """Test that coroutine handlers are scheduled."""
        bus = EventBus()
        done = asyncio.Event()
        received: list[int] = []

        async def handler(value: int) -> None:
            received.append(value)
            done.set()

        bus.subscribe(VOLUME, handler)
        bus.publish(VOLUME, 3)
        await asyncio.wait_for(done.wait(), 1)
        assert received == [3]
