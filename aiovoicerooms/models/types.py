"""Models for enum types used by aiovoicerooms."""

from dataclasses import dataclass
from enum import Enum

from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin
from mashumaro.types import Discriminator

# Participant identifiers are opaque: numeric or string, chosen by the transport.
ParticipantId = int | str


# Base message class
@dataclass
class SessionEvent(DataClassORJSONMixin):
    """Base class for events reported to presentation code."""

    class Config(BaseConfig):
        """Config for parsing json messages."""

        discriminator = Discriminator(field="type", include_subtypes=True)


# Enums


class SessionState(Enum):
    """Lifecycle state of the local session."""

    IDLE = "idle"
    """Not in a room. Initial and terminal state."""
    JOINING = "joining"
    """enter() is in progress."""
    IN_ROOM = "in-room"
    """Joined, microphone published, local participant registered."""
    LEAVING = "leaving"
    """Teardown is in progress."""


class SessionEventType(Enum):
    """Event kinds reported through the event emitter."""

    PARTICIPANT_ADDED = "participant-added"
    PARTICIPANT_REMOVED = "participant-removed"
    SPEAKING_CHANGED = "speaking-changed"
    SESSION_ERROR = "session-error"


class SessionErrorKind(Enum):
    """Kinds of failures reported as session-error events."""

    ALREADY_ACTIVE = "already-active"
    DEVICE_UNAVAILABLE = "device-unavailable"
    TRANSPORT_JOIN_FAILED = "transport-join-failed"
    TRANSPORT_PUBLISH_FAILED = "transport-publish-failed"
    TRANSPORT_LEAVE_FAILED = "transport-leave-failed"
    SUBSCRIBE_FAILED = "subscribe-failed"
    DUPLICATE_PARTICIPANT = "duplicate-participant"
    UNKNOWN_PARTICIPANT = "unknown-participant"
    CONNECTION_LOST = "connection-lost"


class MediaKind(Enum):
    """Media kinds a remote participant can publish."""

    AUDIO = "audio"
    VIDEO = "video"
