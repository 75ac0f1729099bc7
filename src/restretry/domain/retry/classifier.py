"""Transient HTTP status classification.

Allow-list based: only the status codes below are worth retrying. Anything
else, including client errors such as 400 or 404, is final.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Optional

TRANSIENT_STATUS_CODES = frozenset(
    {
        HTTPStatus.TOO_MANY_REQUESTS,  # 429
        HTTPStatus.INTERNAL_SERVER_ERROR,  # 500
        HTTPStatus.BAD_GATEWAY,  # 502
        HTTPStatus.SERVICE_UNAVAILABLE,  # 503
        HTTPStatus.GATEWAY_TIMEOUT,  # 504
        HTTPStatus.INSUFFICIENT_STORAGE,  # 507
        HTTPStatus.REQUEST_TIMEOUT,  # 408
        HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,  # 505
        HTTPStatus.NETWORK_AUTHENTICATION_REQUIRED,  # 511
    }
)

# Terminates the retry loop regardless of classification
SENTINEL_STATUS = HTTPStatus.ACCEPTED


def is_transient(status_code: Optional[int]) -> bool:
    """Check if an HTTP status code signals a transient failure.

    Args:
        status_code: HTTP status code, or None when no response was received

    Returns:
        True if the status should be retried; False for None (fail closed)
    """
    if status_code is None:
        return False
    return status_code in TRANSIENT_STATUS_CODES


def is_sentinel(status_code: Optional[int]) -> bool:
    """Check if the status code is the "Accepted" terminator"""
    return status_code == SENTINEL_STATUS
