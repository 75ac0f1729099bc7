"""Per-request result and state models"""

from restretry.domain.models.attempt_outcome import AttemptOutcome, OutcomeKind
from restretry.domain.models.retry_session import RetrySession, SessionState

__all__ = ["AttemptOutcome", "OutcomeKind", "RetrySession", "SessionState"]
