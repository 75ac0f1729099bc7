"""AttemptOutcome model - the result of a single transport call"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from restretry.domain.retry.classifier import is_sentinel, is_transient


class OutcomeKind(str, Enum):
    """What produced an outcome"""

    RESPONSE = "response"  # HTTP response received
    TRANSPORT_ERROR = "transport_error"  # no usable response (network, timeout, ...)
    CANCELLED = "cancelled"  # aborted by a cancellation token


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of one attempt against the transport"""

    kind: OutcomeKind
    status_code: Optional[int] = None
    content: Optional[str] = None
    payload: Any = None  # decoded JSON body, if any
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    is_transient: bool = False

    @classmethod
    def from_status(
        cls,
        status_code: int,
        *,
        content: Optional[str] = None,
        payload: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> "AttemptOutcome":
        """Build an outcome for a received HTTP response"""
        error = None
        if not 200 <= status_code < 300:
            error = f"HTTP {status_code}"
        return cls(
            kind=OutcomeKind.RESPONSE,
            status_code=status_code,
            content=content,
            payload=payload,
            headers=dict(headers or {}),
            error=error,
            is_transient=is_transient(status_code),
        )

    @classmethod
    def transport_error(cls, error: str, *, transient: bool) -> "AttemptOutcome":
        """Build a synthetic outcome for a failure below the HTTP layer"""
        return cls(kind=OutcomeKind.TRANSPORT_ERROR, error=error, is_transient=transient)

    @classmethod
    def cancelled(cls) -> "AttemptOutcome":
        return cls(kind=OutcomeKind.CANCELLED, error="Operation cancelled")

    @property
    def is_successful(self) -> bool:
        """Check if a 2xx response was received"""
        return (
            self.kind is OutcomeKind.RESPONSE
            and self.status_code is not None
            and 200 <= self.status_code < 300
        )

    @property
    def is_accepted(self) -> bool:
        return self.kind is OutcomeKind.RESPONSE and is_sentinel(self.status_code)

    @property
    def is_cancelled(self) -> bool:
        return self.kind is OutcomeKind.CANCELLED

    def describe(self) -> str:
        """Short human-readable label used in logs"""
        if self.kind is OutcomeKind.RESPONSE:
            return f"HTTP {self.status_code}"
        if self.kind is OutcomeKind.CANCELLED:
            return "cancelled"
        return f"transport error ({self.error})"
