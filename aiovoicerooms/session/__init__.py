"""Public interface for the session package."""

from .controller import SessionController
from .emitter import EventEmitter, SessionEventHandler
from .errors import (
    AlreadyActiveError,
    ConnectionLostError,
    DeviceUnavailableError,
    DuplicateParticipantError,
    SubscribeError,
    TransportJoinError,
    TransportLeaveError,
    TransportPublishError,
    UnknownParticipantError,
    VoiceRoomError,
)
from .participant import Participant, ParticipantRegistry
from .transport import (
    AudioTrack,
    ConnectionLostEvent,
    Transport,
    TransportEvent,
    TransportEventCallback,
    UserJoinedEvent,
    UserLeftEvent,
    UserPublishedEvent,
    VolumeIndicatorEvent,
)
from .volume import SpeakingChange, VolumeMonitor

__all__ = [
    "AlreadyActiveError",
    "AudioTrack",
    "ConnectionLostError",
    "ConnectionLostEvent",
    "DeviceUnavailableError",
    "DuplicateParticipantError",
    "EventEmitter",
    "Participant",
    "ParticipantRegistry",
    "SessionController",
    "SessionEventHandler",
    "SpeakingChange",
    "SubscribeError",
    "Transport",
    "TransportEvent",
    "TransportEventCallback",
    "TransportJoinError",
    "TransportLeaveError",
    "TransportPublishError",
    "UnknownParticipantError",
    "UserJoinedEvent",
    "UserLeftEvent",
    "UserPublishedEvent",
    "VoiceRoomError",
    "VolumeIndicatorEvent",
    "VolumeMonitor",
]
