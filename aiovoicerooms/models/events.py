"""
Session events for presentation code.

These are the notifications the session controller emits whenever the roster
or a participant's speaking state changes, or when a failure has to be
surfaced. All of them serialize to JSON with a ``type`` discriminator so they
can be forwarded outside the process unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from mashumaro.mixins.orjson import DataClassORJSONMixin

from .types import ParticipantId, SessionErrorKind, SessionEvent, SessionEventType


@dataclass
class ParticipantAddedEvent(SessionEvent):
    """A participant entered the roster."""

    participant_id: ParticipantId
    """The ID of the participant that was added."""
    is_local: bool = False
    """True when the participant is the local session identity."""
    type: Literal["participant-added"] = "participant-added"


@dataclass
class ParticipantRemovedEvent(SessionEvent):
    """A participant left the roster."""

    participant_id: ParticipantId
    """The ID of the participant that was removed."""
    type: Literal["participant-removed"] = "participant-removed"


@dataclass
class SpeakingChangedEvent(SessionEvent):
    """A participant started or stopped speaking."""

    participant_id: ParticipantId
    speaking: bool
    type: Literal["speaking-changed"] = "speaking-changed"


@dataclass
class SessionErrorEvent(SessionEvent):
    """A failure that was recovered locally and is reported for display."""

    kind: SessionErrorKind
    """What went wrong."""
    detail: str | None = None
    """Human readable description, usually the underlying exception text."""
    participant_id: ParticipantId | None = None
    """Participant the failure relates to, if any."""
    type: Literal["session-error"] = "session-error"


EVENT_TYPES: dict[type[SessionEvent], SessionEventType] = {
    ParticipantAddedEvent: SessionEventType.PARTICIPANT_ADDED,
    ParticipantRemovedEvent: SessionEventType.PARTICIPANT_REMOVED,
    SpeakingChangedEvent: SessionEventType.SPEAKING_CHANGED,
    SessionErrorEvent: SessionEventType.SESSION_ERROR,
}


@dataclass
class RosterEntry(DataClassORJSONMixin):
    """A participant as seen by presentation code."""

    participant_id: ParticipantId
    is_local: bool
    speaking: bool
    has_audio: bool


@dataclass
class RosterSnapshotEvent(SessionEvent):
    """
    Full roster, sent to presentation consumers when they connect.

    Never emitted by the controller itself, only by the presentation relay.
    """

    state: str
    """Current session state value."""
    participants: list[RosterEntry]
    room_id: str | None = None
    type: Literal["roster-snapshot"] = "roster-snapshot"
