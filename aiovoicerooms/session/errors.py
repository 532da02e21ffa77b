"""Exceptions raised by the session components."""

from __future__ import annotations

from aiovoicerooms.models.types import ParticipantId, SessionErrorKind


class VoiceRoomError(Exception):
    """Base class for all session errors."""

    kind: SessionErrorKind

    def __init__(self, message: str, *, participant_id: ParticipantId | None = None) -> None:
        """Create the error with a message and the participant it concerns, if any."""
        super().__init__(message)
        self.participant_id = participant_id


class AlreadyActiveError(VoiceRoomError):
    """enter() was called while the session was not idle."""

    kind = SessionErrorKind.ALREADY_ACTIVE


class DeviceUnavailableError(VoiceRoomError):
    """The microphone track could not be created."""

    kind = SessionErrorKind.DEVICE_UNAVAILABLE


class TransportJoinError(VoiceRoomError):
    """The transport refused to join the channel."""

    kind = SessionErrorKind.TRANSPORT_JOIN_FAILED


class TransportPublishError(VoiceRoomError):
    """The transport refused to publish the microphone track."""

    kind = SessionErrorKind.TRANSPORT_PUBLISH_FAILED


class TransportLeaveError(VoiceRoomError):
    """Unpublishing or leaving the channel failed during teardown."""

    kind = SessionErrorKind.TRANSPORT_LEAVE_FAILED


class SubscribeError(VoiceRoomError):
    """Subscribing to a remote participant's audio failed."""

    kind = SessionErrorKind.SUBSCRIBE_FAILED


class DuplicateParticipantError(VoiceRoomError):
    """A participant with the same ID is already registered."""

    kind = SessionErrorKind.DUPLICATE_PARTICIPANT


class UnknownParticipantError(VoiceRoomError):
    """No participant with the given ID is registered."""

    kind = SessionErrorKind.UNKNOWN_PARTICIPANT


class ConnectionLostError(VoiceRoomError):
    """The transport reported that the connection to the room is gone."""

    kind = SessionErrorKind.CONNECTION_LOST
