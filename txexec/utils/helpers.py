"""Common helper functions used across the package."""

from __future__ import annotations

import uuid


def generate_uuid() -> str:
    """Return a new random UUID4 string."""
    return str(uuid.uuid4())


def generate_tx_id() -> str:
    """Return a short identifier used to tag the log lines of one transaction."""
    return uuid.uuid4().hex[:12]
