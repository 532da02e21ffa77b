"""Utility functions for aiovoicerooms."""

from __future__ import annotations

import random

# Exclusive upper bound for generated local participant IDs.
LOCAL_ID_UPPER_BOUND = 2032


def generate_local_id() -> int:
    """Return a random numeric participant ID in [0, LOCAL_ID_UPPER_BOUND)."""
    return random.randrange(LOCAL_ID_UPPER_BOUND)  # noqa: S311
