"""RetrySession model - per-call retry state"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from restretry.domain.models.attempt_outcome import AttemptOutcome


class SessionState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    AWAITING_DELAY = "awaiting_delay"
    TERMINATED = "terminated"


# Allowed transitions; TERMINATED is final
_TRANSITIONS = {
    SessionState.IDLE: {SessionState.ATTEMPTING},
    SessionState.ATTEMPTING: {SessionState.AWAITING_DELAY, SessionState.TERMINATED},
    SessionState.AWAITING_DELAY: {SessionState.ATTEMPTING, SessionState.TERMINATED},
    SessionState.TERMINATED: set(),
}


@dataclass
class RetrySession:
    """State of one logical request across its attempts.

    Created fresh for every orchestrator call and never shared.
    """

    attempt_index: int = 0  # zero-based index of the next retry
    state: SessionState = SessionState.IDLE
    outcomes: List[AttemptOutcome] = field(default_factory=list)
    delays: List[float] = field(default_factory=list)  # seconds waited before each retry
    exhausted: bool = False

    @property
    def last_outcome(self) -> Optional[AttemptOutcome]:
        return self.outcomes[-1] if self.outcomes else None

    @property
    def attempts(self) -> int:
        """Number of attempts recorded so far (including a cancelled one)"""
        return len(self.outcomes)

    def transition(self, new_state: SessionState) -> None:
        """Move to a new state

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid retry session transition: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def record(self, outcome: AttemptOutcome) -> None:
        self.outcomes.append(outcome)
