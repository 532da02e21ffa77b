from __future__ import annotations

import pytest
from conftest import FakeTrack

from aiovoicerooms.session.errors import DuplicateParticipantError, UnknownParticipantError
from aiovoicerooms.session.participant import ParticipantRegistry


def test_add_registers_silent_participant_without_track() -> None:
    registry = ParticipantRegistry()
    participant = registry.add(7)
    assert participant.participant_id == 7
    assert participant.speaking is False
    assert participant.audio_track is None
    assert participant.is_local is False
    assert 7 in registry
    assert registry.get(7) is participant


def test_add_duplicate_raises() -> None:
    registry = ParticipantRegistry()
    registry.add("alice")
    with pytest.raises(DuplicateParticipantError) as excinfo:
        registry.add("alice")
    assert excinfo.value.participant_id == "alice"
    assert len(registry) == 1


def test_attach_track_to_unknown_participant_raises() -> None:
    registry = ParticipantRegistry()
    with pytest.raises(UnknownParticipantError):
        registry.attach_track(3, FakeTrack("orphan"))


def test_attach_track_releases_previous_track() -> None:
    registry = ParticipantRegistry()
    registry.add(7)
    first = FakeTrack("first")
    second = FakeTrack("second")
    registry.attach_track(7, first)
    registry.attach_track(7, second)
    assert first.released
    assert second.stop_calls == 0
    assert registry.get(7).audio_track is second

    # Attaching the same track again must not release it
    registry.attach_track(7, second)
    assert second.close_calls == 0


def test_remove_releases_track_once_and_is_idempotent() -> None:
    registry = ParticipantRegistry()
    registry.add(7)
    track = FakeTrack("remote-7")
    registry.attach_track(7, track)

    removed = registry.remove(7)
    assert removed is not None
    assert removed.participant_id == 7
    assert removed.audio_track is None
    assert track.released

    assert registry.remove(7) is None
    assert track.released
    assert len(registry) == 0


def test_remove_survives_failing_track() -> None:
    class BrokenTrack(FakeTrack):
        def stop(self) -> None:
            super().stop()
            raise RuntimeError("device gone")

    registry = ParticipantRegistry()
    registry.add(1)
    track = BrokenTrack("broken")
    registry.attach_track(1, track)
    assert registry.remove(1) is not None
    assert track.stop_calls == 1
    assert track.close_calls == 1


def test_all_is_an_ordered_snapshot() -> None:
    registry = ParticipantRegistry()
    for participant_id in (42, 7, "guest"):
        registry.add(participant_id, is_local=participant_id == 42)

    snapshot = registry.all()
    seen = []
    for participant in snapshot:
        seen.append(participant.participant_id)
        registry.remove(participant.participant_id)
    assert seen == [42, 7, "guest"]
    # The snapshot can be iterated again and still holds the old view
    assert [p.participant_id for p in snapshot] == [42, 7, "guest"]
    assert registry.all() == ()


def test_local_participant_lookup() -> None:
    registry = ParticipantRegistry()
    registry.add(7)
    assert registry.local is None
    local = registry.add(42, is_local=True)
    assert registry.local is local


def test_roster_size_tracks_joins_and_matching_leaves() -> None:
    registry = ParticipantRegistry()
    operations = [("join", 1), ("join", 2), ("leave", 1), ("leave", 1), ("join", 3), ("leave", 9)]
    for action, participant_id in operations:
        if action == "join":
            if participant_id not in registry:
                registry.add(participant_id)
        else:
            registry.remove(participant_id)
    assert [p.participant_id for p in registry.all()] == [2, 3]
