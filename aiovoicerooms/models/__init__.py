"""Models for aiovoicerooms sessions and the events they report."""

from __future__ import annotations

__all__ = [
    "DEFAULT_ROOM_ID",
    "DEFAULT_SPEAKING_THRESHOLD",
    "DEFAULT_VOLUME_SAMPLE_INTERVAL_MS",
    "EVENT_TYPES",
    "MediaKind",
    "ParticipantAddedEvent",
    "ParticipantId",
    "ParticipantRemovedEvent",
    "RosterEntry",
    "RosterSnapshotEvent",
    "SessionConfig",
    "SessionErrorEvent",
    "SessionErrorKind",
    "SessionEvent",
    "SessionEventType",
    "SessionState",
    "SpeakingChangedEvent",
    "VolumeSample",
    "core",
    "events",
    "types",
]

from . import core, events, types
from .core import (
    DEFAULT_ROOM_ID,
    DEFAULT_SPEAKING_THRESHOLD,
    DEFAULT_VOLUME_SAMPLE_INTERVAL_MS,
    SessionConfig,
    VolumeSample,
)
from .events import (
    EVENT_TYPES,
    ParticipantAddedEvent,
    ParticipantRemovedEvent,
    RosterEntry,
    RosterSnapshotEvent,
    SessionErrorEvent,
    SpeakingChangedEvent,
)
from .types import (
    MediaKind,
    ParticipantId,
    SessionErrorKind,
    SessionEvent,
    SessionEventType,
    SessionState,
)
