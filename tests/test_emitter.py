from __future__ import annotations

from aiovoicerooms.models.events import ParticipantAddedEvent, ParticipantRemovedEvent
from aiovoicerooms.models.types import SessionEventType
from aiovoicerooms.session.emitter import EventEmitter


def test_handlers_run_in_subscription_order() -> None:
    emitter = EventEmitter()
    calls: list[str] = []
    emitter.on(SessionEventType.PARTICIPANT_ADDED, lambda e: calls.append("first"))
    emitter.on(SessionEventType.PARTICIPANT_ADDED, lambda e: calls.append("second"))
    emitter.on(SessionEventType.PARTICIPANT_REMOVED, lambda e: calls.append("other"))

    failures = emitter.emit(SessionEventType.PARTICIPANT_ADDED, ParticipantAddedEvent(1))
    assert failures == 0
    assert calls == ["first", "second"]


def test_failing_handler_does_not_stop_others() -> None:
    emitter = EventEmitter()
    received = []

    def broken(event) -> None:
        raise RuntimeError("presentation bug")

    emitter.on(SessionEventType.PARTICIPANT_REMOVED, broken)
    emitter.on(SessionEventType.PARTICIPANT_REMOVED, received.append)

    event = ParticipantRemovedEvent(3)
    assert emitter.emit(SessionEventType.PARTICIPANT_REMOVED, event) == 1
    assert received == [event]


def test_unsubscribe() -> None:
    emitter = EventEmitter()
    received = []
    remove = emitter.on(SessionEventType.PARTICIPANT_ADDED, received.append)
    assert emitter.handler_count(SessionEventType.PARTICIPANT_ADDED) == 1
    remove()
    remove()
    emitter.emit(SessionEventType.PARTICIPANT_ADDED, ParticipantAddedEvent(1))
    assert received == []
    assert emitter.handler_count(SessionEventType.PARTICIPANT_ADDED) == 0


def test_emit_without_handlers() -> None:
    emitter = EventEmitter()
    assert emitter.emit(SessionEventType.SESSION_ERROR, ParticipantAddedEvent(1)) == 0
