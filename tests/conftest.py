from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from aiovoicerooms.models.types import MediaKind, ParticipantId, SessionEvent, SessionEventType
from aiovoicerooms.session.emitter import EventEmitter
from aiovoicerooms.session.transport import TransportEvent, TransportEventCallback


class FakeTrack:
    """Audio track that records what was done to it."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.playing = False
        self.stop_calls = 0
        self.close_calls = 0

    def play(self) -> None:
        self.playing = True

    def stop(self) -> None:
        self.playing = False
        self.stop_calls += 1

    def close(self) -> None:
        self.close_calls += 1

    @property
    def released(self) -> bool:
        return self.stop_calls == 1 and self.close_calls == 1

    def __repr__(self) -> str:
        return f"FakeTrack({self.name!r})"


class FakeTransport:
    """
    In-memory transport.

    Set ``fail_<operation>`` to an exception to make that operation raise, or
    ``gate_<operation>`` to an asyncio.Event to suspend it until the event is set.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.listeners: list[TransportEventCallback] = []
        self.microphones: list[FakeTrack] = []
        self.subscribed: dict[ParticipantId, list[FakeTrack]] = {}
        self.published: FakeTrack | None = None
        self.joined_with: tuple | None = None
        self.volume_interval_ms: int | None = None
        self.fail_join: Exception | None = None
        self.fail_microphone: Exception | None = None
        self.fail_publish: Exception | None = None
        self.fail_unpublish: Exception | None = None
        self.fail_leave: Exception | None = None
        self.fail_subscribe: Exception | None = None
        self.gate_join: asyncio.Event | None = None
        self.gate_publish: asyncio.Event | None = None
        self.gate_subscribe: asyncio.Event | None = None
        self.gate_leave: asyncio.Event | None = None

    async def _step(self, name: str, gate: asyncio.Event | None, fail: Exception | None) -> None:
        self.calls.append(name)
        if gate is not None:
            await gate.wait()
        if fail is not None:
            raise fail

    async def join(self, app_id, room_id, token, local_id) -> None:
        await self._step("join", self.gate_join, self.fail_join)
        self.joined_with = (app_id, room_id, token, local_id)

    async def create_microphone_track(self) -> FakeTrack:
        await self._step("create_microphone_track", None, self.fail_microphone)
        track = FakeTrack(f"microphone-{len(self.microphones)}")
        self.microphones.append(track)
        return track

    async def publish(self, track: FakeTrack) -> None:
        await self._step("publish", self.gate_publish, self.fail_publish)
        self.published = track

    async def unpublish(self) -> None:
        await self._step("unpublish", None, self.fail_unpublish)
        self.published = None

    async def leave(self) -> None:
        await self._step("leave", self.gate_leave, self.fail_leave)
        self.joined_with = None

    async def subscribe(self, participant_id: ParticipantId, media_kind: MediaKind) -> FakeTrack:
        await self._step("subscribe", self.gate_subscribe, self.fail_subscribe)
        track = FakeTrack(f"remote-{participant_id}")
        self.subscribed.setdefault(participant_id, []).append(track)
        return track

    def enable_volume_indicator(self, interval_ms: int) -> None:
        self.calls.append("enable_volume_indicator")
        self.volume_interval_ms = interval_ms

    def add_event_listener(self, callback: TransportEventCallback) -> Callable[[], None]:
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def fire(self, event: TransportEvent) -> None:
        for listener in list(self.listeners):
            listener(event)


class EventRecorder:
    """Collects every event emitted through an emitter."""

    def __init__(self, emitter: EventEmitter) -> None:
        self.events: list[SessionEvent] = []
        for event_type in SessionEventType:
            emitter.on(event_type, self.events.append)

    def of_type(self, event_type: type[SessionEvent]) -> list[SessionEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()


async def settle() -> None:
    """Let scheduled event tasks run to completion."""
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def recorder(emitter: EventEmitter) -> EventRecorder:
    return EventRecorder(emitter)
