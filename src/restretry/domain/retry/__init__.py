"""Retry decision rules: status classification and backoff delays"""

from restretry.domain.retry.backoff import compute_delay, delay_schedule, fibonacci
from restretry.domain.retry.classifier import (
    SENTINEL_STATUS,
    TRANSIENT_STATUS_CODES,
    is_sentinel,
    is_transient,
)

__all__ = [
    "SENTINEL_STATUS",
    "TRANSIENT_STATUS_CODES",
    "compute_delay",
    "delay_schedule",
    "fibonacci",
    "is_sentinel",
    "is_transient",
]
