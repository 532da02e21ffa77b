"""Participants in the room and the registry holding them."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aiovoicerooms.models.types import ParticipantId

from .errors import DuplicateParticipantError, UnknownParticipantError
from .transport import AudioTrack

logger = logging.getLogger(__name__)


@dataclass
class Participant:
    """One connected identity in the room, local or remote."""

    participant_id: ParticipantId
    """Stable for the participant's entire membership."""
    is_local: bool = False
    """True for the local session's own identity."""
    audio_track: AudioTrack | None = None
    """Subscribed audio track, owned by this participant until removal."""
    speaking: bool = False
    """Derived from the latest volume sample. Only the volume monitor sets this."""

    @property
    def has_audio(self) -> bool:
        """Whether an audio track is attached."""
        return self.audio_track is not None


def release_track(track: AudioTrack) -> None:
    """Stop and close a track, logging instead of raising on failure."""
    try:
        track.stop()
    except Exception:
        logger.exception("Failed to stop audio track %s", track)
    try:
        track.close()
    except Exception:
        logger.exception("Failed to close audio track %s", track)


class ParticipantRegistry:
    """
    The roster: every participant currently in the room.

    Owns the audio track of each participant. A track is released exactly once,
    either when it gets replaced or when its participant is removed.
    """

    _participants: dict[ParticipantId, Participant]
    """Participants keyed by ID, in insertion order."""

    def __init__(self) -> None:
        """Initialize an empty roster."""
        self._participants = {}

    def add(self, participant_id: ParticipantId, *, is_local: bool = False) -> Participant:
        """
        Register a new participant.

        Raises:
            DuplicateParticipantError: If the ID is already registered.
        """
        if participant_id in self._participants:
            raise DuplicateParticipantError(
                f"Participant {participant_id} is already registered",
                participant_id=participant_id,
            )
        participant = Participant(participant_id=participant_id, is_local=is_local)
        self._participants[participant_id] = participant
        logger.debug("Added participant %s (local=%s)", participant_id, is_local)
        return participant

    def attach_track(self, participant_id: ParticipantId, track: AudioTrack) -> None:
        """
        Attach an audio track to a participant, releasing any previous one.

        Raises:
            UnknownParticipantError: If the ID is not registered.
        """
        participant = self._participants.get(participant_id)
        if participant is None:
            raise UnknownParticipantError(
                f"Participant {participant_id} is not registered",
                participant_id=participant_id,
            )
        previous = participant.audio_track
        if previous is track:
            return
        if previous is not None:
            logger.debug("Replacing audio track of participant %s", participant_id)
            participant.audio_track = None
            release_track(previous)
        participant.audio_track = track

    def remove(self, participant_id: ParticipantId) -> Participant | None:
        """
        Remove a participant and release its audio track.

        Returns the removed participant, or None if it was not registered.
        """
        participant = self._participants.pop(participant_id, None)
        if participant is None:
            return None
        track = participant.audio_track
        participant.audio_track = None
        if track is not None:
            release_track(track)
        logger.debug("Removed participant %s", participant_id)
        return participant

    def get(self, participant_id: ParticipantId) -> Participant | None:
        """Return the participant with the given ID, if registered."""
        return self._participants.get(participant_id)

    def all(self) -> tuple[Participant, ...]:
        """
        Snapshot of all participants in insertion order.

        The snapshot is a copy: participants removed while it is iterated only
        disappear from the next call.
        """
        return tuple(self._participants.values())

    @property
    def local(self) -> Participant | None:
        """The local participant, if registered."""
        return next((p for p in self._participants.values() if p.is_local), None)

    def __len__(self) -> int:
        """Number of registered participants."""
        return len(self._participants)

    def __contains__(self, participant_id: object) -> bool:
        """Whether a participant with the given ID is registered."""
        return participant_id in self._participants
