"""Utility helpers shared by the executor and its adapters."""

from .helpers import generate_tx_id, generate_uuid
from .logging import configure_logging, get_correlation_id, set_correlation_id

__all__ = [
    "configure_logging",
    "generate_tx_id",
    "generate_uuid",
    "get_correlation_id",
    "set_correlation_id",
]
