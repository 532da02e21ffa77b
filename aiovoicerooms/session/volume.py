"""Derive speaking state from periodic volume batches."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from aiovoicerooms.models.core import DEFAULT_SPEAKING_THRESHOLD, VolumeSample
from aiovoicerooms.models.types import ParticipantId

from .participant import ParticipantRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SpeakingChange:
    """A participant's speaking state flipped."""

    participant_id: ParticipantId
    speaking: bool


class VolumeMonitor:
    """
    Marks participants as speaking based on the latest volume sample.

    A participant speaks when its level is at or above the threshold.
    Participants missing from a batch keep their last state; the transport only
    reports participants with measurable audio.
    """

    def __init__(
        self, registry: ParticipantRegistry, *, threshold: int = DEFAULT_SPEAKING_THRESHOLD
    ) -> None:
        """Attach to the registry whose participants are updated."""
        self._registry = registry
        self._threshold = threshold

    @property
    def threshold(self) -> int:
        """Level at or above which a participant counts as speaking."""
        return self._threshold

    def ingest(self, batch: Sequence[VolumeSample]) -> list[SpeakingChange]:
        """
        Apply a batch of samples.

        Unknown participant IDs are ignored, since volume batches and leave
        events may interleave. Returns one change per participant whose speaking
        state actually flipped, in order of first appearance in the batch.
        """
        initial: dict[ParticipantId, bool] = {}
        for sample in batch:
            participant = self._registry.get(sample.participant_id)
            if participant is None:
                logger.debug(
                    "Ignoring volume sample for unknown participant %s", sample.participant_id
                )
                continue
            initial.setdefault(sample.participant_id, participant.speaking)
            participant.speaking = sample.level >= self._threshold

        changes: list[SpeakingChange] = []
        for participant_id, was_speaking in initial.items():
            participant = self._registry.get(participant_id)
            if participant is not None and participant.speaking != was_speaking:
                changes.append(SpeakingChange(participant_id, participant.speaking))
        return changes
