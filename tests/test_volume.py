from __future__ import annotations

from aiovoicerooms.models.core import VolumeSample
from aiovoicerooms.session.participant import ParticipantRegistry
from aiovoicerooms.session.volume import SpeakingChange, VolumeMonitor


def _registry(*participant_ids) -> ParticipantRegistry:
    registry = ParticipantRegistry()
    for participant_id in participant_ids:
        registry.add(participant_id)
    return registry


def test_level_at_threshold_counts_as_speaking() -> None:
    registry = _registry(7, 8)
    monitor = VolumeMonitor(registry)
    assert monitor.threshold == 50

    changes = monitor.ingest([VolumeSample(7, 50), VolumeSample(8, 49.9)])
    assert changes == [SpeakingChange(7, True)]
    assert registry.get(7).speaking is True
    assert registry.get(8).speaking is False


def test_identical_batch_emits_nothing_the_second_time() -> None:
    registry = _registry(7)
    monitor = VolumeMonitor(registry)
    batch = [VolumeSample(7, 80)]
    assert monitor.ingest(batch) == [SpeakingChange(7, True)]
    assert monitor.ingest(batch) == []


def test_absent_participants_keep_their_state() -> None:
    registry = _registry(7, 8)
    monitor = VolumeMonitor(registry)
    monitor.ingest([VolumeSample(7, 90), VolumeSample(8, 90)])

    changes = monitor.ingest([VolumeSample(8, 10)])
    assert changes == [SpeakingChange(8, False)]
    assert registry.get(7).speaking is True


def test_unknown_participants_are_ignored() -> None:
    registry = _registry(7)
    monitor = VolumeMonitor(registry)
    changes = monitor.ingest([VolumeSample(99, 100), VolumeSample(7, 100)])
    assert changes == [SpeakingChange(7, True)]


def test_custom_threshold() -> None:
    registry = _registry("alice")
    monitor = VolumeMonitor(registry, threshold=5)
    assert monitor.ingest([VolumeSample("alice", 5)]) == [SpeakingChange("alice", True)]


def test_repeated_participant_in_batch_reports_net_change_only() -> None:
    registry = _registry(7)
    monitor = VolumeMonitor(registry)
    assert monitor.ingest([VolumeSample(7, 80), VolumeSample(7, 10)]) == []
    assert registry.get(7).speaking is False
    assert monitor.ingest([VolumeSample(7, 10), VolumeSample(7, 80)]) == [SpeakingChange(7, True)]
