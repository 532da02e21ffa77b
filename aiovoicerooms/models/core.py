"""
Core data models for a voice room session.

This module contains the configuration a session controller is created with and
the volume samples the transport reports on a fixed interval.
"""

from __future__ import annotations

from dataclasses import dataclass

from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin

from .types import ParticipantId

DEFAULT_ROOM_ID = "main"
DEFAULT_SPEAKING_THRESHOLD = 50
DEFAULT_VOLUME_SAMPLE_INTERVAL_MS = 200


@dataclass
class VolumeSample(DataClassORJSONMixin):
    """A single volume measurement for one participant."""

    participant_id: ParticipantId
    """The participant the measurement belongs to."""
    level: float
    """Measured level, 0-100 or the transport's native scale."""

    def __post_init__(self) -> None:
        """Validate field values."""
        if self.level < 0:
            raise ValueError(f"level must not be negative, got {self.level}")


@dataclass
class SessionConfig(DataClassORJSONMixin):
    """
    Configuration of a session controller.

    Provided once at construction; there is no runtime reconfiguration.
    """

    room_id: str = DEFAULT_ROOM_ID
    """Room (channel) joined by enter() when no room is passed explicitly."""
    speaking_threshold: int = DEFAULT_SPEAKING_THRESHOLD
    """Volume level at or above which a participant counts as speaking."""
    volume_sample_interval_ms: int = DEFAULT_VOLUME_SAMPLE_INTERVAL_MS
    """Interval the transport is asked to report volume batches at."""
    app_id: str | None = None
    """Opaque application identifier handed to the transport on join."""
    token: str | None = None
    """Opaque access token handed to the transport on join, None when unused."""
    local_id: ParticipantId | None = None
    """Local participant ID. A random one is generated when not set."""

    def __post_init__(self) -> None:
        """Validate field values."""
        if not self.room_id:
            raise ValueError("room_id cannot be empty")
        if self.speaking_threshold < 0:
            raise ValueError(
                f"speaking_threshold must not be negative, got {self.speaking_threshold}"
            )
        if self.volume_sample_interval_ms <= 0:
            raise ValueError(
                "volume_sample_interval_ms must be positive, "
                f"got {self.volume_sample_interval_ms}"
            )

    class Config(BaseConfig):
        """Config for parsing json messages."""

        omit_none = True
