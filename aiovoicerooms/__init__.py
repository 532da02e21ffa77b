"""Session membership and speaking state for audio-only voice rooms."""
