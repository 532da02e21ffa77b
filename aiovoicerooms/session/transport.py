"""
Boundary to the real-time transport.

The transport performs network transmission, codec negotiation and audio mixing.
The session controller only calls the operations declared by ``Transport`` and
reacts to the events it delivers through ``add_event_listener()``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from aiovoicerooms.models.core import VolumeSample
from aiovoicerooms.models.types import MediaKind, ParticipantId


class AudioTrack(Protocol):
    """A playable audio stream handle, local microphone or remote subscription."""

    def play(self) -> None:
        """Start playback on the local output device."""

    def stop(self) -> None:
        """Stop playback or capture."""

    def close(self) -> None:
        """Release the underlying device or stream."""


class TransportEvent:
    """Base event type delivered by Transport.add_event_listener()."""


@dataclass
class UserJoinedEvent(TransportEvent):
    """A remote participant joined the channel."""

    participant_id: ParticipantId


@dataclass
class UserPublishedEvent(TransportEvent):
    """A remote participant published a media track."""

    participant_id: ParticipantId
    media_kind: MediaKind


@dataclass
class UserLeftEvent(TransportEvent):
    """A remote participant left the channel."""

    participant_id: ParticipantId


@dataclass
class VolumeIndicatorEvent(TransportEvent):
    """Periodic batch of volume measurements, one per measured participant."""

    samples: Sequence[VolumeSample]


@dataclass
class ConnectionLostEvent(TransportEvent):
    """The transport lost its connection to the channel and will not recover."""

    reason: str | None = None


TransportEventCallback = Callable[[TransportEvent], None]


class Transport(Protocol):
    """Operations the session controller needs from a real-time transport."""

    async def join(
        self,
        app_id: str | None,
        room_id: str,
        token: str | None,
        local_id: ParticipantId,
    ) -> None:
        """Join the channel ``room_id`` as ``local_id``."""

    async def create_microphone_track(self) -> AudioTrack:
        """Acquire the microphone and return a track capturing it."""

    async def publish(self, track: AudioTrack) -> None:
        """Publish a local track to the channel."""

    async def unpublish(self) -> None:
        """Unpublish all local tracks."""

    async def leave(self) -> None:
        """Leave the channel."""

    async def subscribe(self, participant_id: ParticipantId, media_kind: MediaKind) -> AudioTrack:
        """Subscribe to a remote participant's published track."""

    def enable_volume_indicator(self, interval_ms: int) -> None:
        """Report VolumeIndicatorEvent batches every ``interval_ms`` milliseconds."""

    def add_event_listener(self, callback: TransportEventCallback) -> Callable[[], None]:
        """
        Register a callback for transport events.

        Returns a function to remove the listener.
        """
