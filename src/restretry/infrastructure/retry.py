"""Retry orchestration using tenacity.

The orchestrator calls a transport operation, classifies each outcome and
sleeps between attempts according to the configured backoff. Outcomes are
values, never exceptions: exhaustion returns the last outcome as-is and
cancellation returns a dedicated outcome.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    Retrying,
    retry_if_result,
    retry_never,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from restretry.domain.config.retry import BackoffKind, RetryConfiguration
from restretry.domain.models.attempt_outcome import AttemptOutcome
from restretry.domain.models.retry_session import RetrySession, SessionState
from restretry.domain.retry.backoff import compute_delay
from restretry.infrastructure.cancellation import CancellationToken

logger = logging.getLogger(__name__)

Operation = Callable[[], AttemptOutcome]
AsyncOperation = Callable[[], Awaitable[AttemptOutcome]]


class wait_backoff(wait_base):
    """Wait strategy delegating to the configured backoff kind."""

    def __init__(self, config: RetryConfiguration, rng: Optional[random.Random] = None) -> None:
        self.config = config
        self.rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        # attempt_number is 1-based and counts the initial call
        return compute_delay(retry_state.attempt_number - 1, self.config, self.rng)


def should_retry(outcome: Optional[AttemptOutcome]) -> bool:
    """Check if an outcome warrants another attempt"""
    if outcome is None:
        return False
    return outcome.is_transient and not outcome.is_accepted and not outcome.is_cancelled


class RetryOrchestrator:
    """Runs an operation until it yields a final outcome or attempts run out.

    Total calls are bounded by ``config.max_attempts + 1``. The orchestrator
    holds no per-call state, so one instance may serve concurrent calls.
    """

    def __init__(
        self,
        sleep: Callable[[float], Any] = time.sleep,
        async_sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Initialize orchestrator

        Args:
            sleep: Blocking sleep used between synchronous attempts
            async_sleep: Non-blocking sleep used between asynchronous attempts
            rng: Random source for randomized backoff kinds (shared one if None)
        """
        self._sleep = sleep
        self._async_sleep = async_sleep
        self._rng = rng

    def _policy(self, session: RetrySession, config: RetryConfiguration) -> Dict[str, Any]:
        """Build the tenacity arguments shared by the sync and async loops"""
        total = config.total_attempts

        def _before_sleep(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome.result()
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            session.attempt_index = retry_state.attempt_number - 1
            session.delays.append(delay)
            session.transition(SessionState.AWAITING_DELAY)
            logger.warning(
                f"Transient failure {outcome.describe()} "
                f"(attempt {retry_state.attempt_number}/{total}). Retrying in {delay:.2f}s..."
            )

        def _on_exhausted(retry_state: RetryCallState) -> AttemptOutcome:
            outcome = retry_state.outcome.result()
            session.exhausted = True
            logger.warning(
                f"Retries exhausted after {retry_state.attempt_number} attempts, "
                f"returning last outcome: {outcome.describe()}"
            )
            return outcome

        if config.backoff is BackoffKind.NO_RETRY:
            retry = retry_never
        else:
            retry = retry_if_result(should_retry)

        return {
            "stop": stop_after_attempt(total),
            "wait": wait_backoff(config, self._rng),
            "retry": retry,
            "before_sleep": _before_sleep,
            "retry_error_callback": _on_exhausted,
        }

    def _begin_attempt(self, session: RetrySession) -> None:
        session.transition(SessionState.ATTEMPTING)
        logger.debug(f"Attempt {session.attempts + 1}")

    def _finish(self, session: RetrySession, outcome: AttemptOutcome) -> RetrySession:
        session.transition(SessionState.TERMINATED)
        if outcome.is_cancelled:
            logger.info(f"Retry loop cancelled after {session.attempts} attempts")
        else:
            logger.debug(f"Retry loop finished after {session.attempts} attempts: {outcome.describe()}")
        return session

    @staticmethod
    def _checked(result: Any) -> AttemptOutcome:
        """Treat anything other than an outcome as a final failure"""
        if isinstance(result, AttemptOutcome):
            return result
        logger.error(f"Operation returned {type(result).__name__} instead of an outcome")
        return AttemptOutcome.transport_error(f"No response ({type(result).__name__})", transient=False)

    @classmethod
    def _guard(cls, operation: Operation) -> AttemptOutcome:
        try:
            result = operation()
        except Exception as e:
            logger.error(f"Operation raised {type(e).__name__}: {e}", exc_info=True)
            return AttemptOutcome.transport_error(f"{type(e).__name__}: {e}", transient=False)
        return cls._checked(result)

    @classmethod
    async def _guard_async(cls, operation: AsyncOperation) -> AttemptOutcome:
        try:
            result = await operation()
        except Exception as e:
            logger.error(f"Operation raised {type(e).__name__}: {e}", exc_info=True)
            return AttemptOutcome.transport_error(f"{type(e).__name__}: {e}", transient=False)
        return cls._checked(result)

    def run(
        self,
        operation: Operation,
        config: RetryConfiguration,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RetrySession:
        """Run a synchronous operation with retry

        Args:
            operation: Zero-argument callable performing one attempt
            config: Retry configuration
            cancel_token: Optional cancellation signal

        Returns:
            Terminated session holding every outcome
        """
        session = RetrySession()

        def _attempt() -> AttemptOutcome:
            self._begin_attempt(session)
            if cancel_token is not None and cancel_token.is_cancelled:
                outcome = AttemptOutcome.cancelled()
            else:
                outcome = self._guard(operation)
                # A blocking call cannot be interrupted; discard its late result
                if cancel_token is not None and cancel_token.is_cancelled:
                    outcome = AttemptOutcome.cancelled()
            session.record(outcome)
            return outcome

        def _sleep(seconds: float) -> None:
            if cancel_token is None:
                self._sleep(seconds)
            else:
                cancel_token.wait(seconds)

        retrying = Retrying(sleep=_sleep, **self._policy(session, config))
        outcome = retrying(_attempt)
        return self._finish(session, outcome)

    def execute(
        self,
        operation: Operation,
        config: RetryConfiguration,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        """Run a synchronous operation with retry and return the final outcome"""
        return self.run(operation, config, cancel_token).last_outcome

    async def run_async(
        self,
        operation: AsyncOperation,
        config: RetryConfiguration,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RetrySession:
        """Run an asynchronous operation with retry

        The delay between attempts yields to the event loop. With a
        cancel_token, both the in-flight call and the delay are abandoned as
        soon as the token is cancelled.
        """
        session = RetrySession()

        async def _attempt() -> AttemptOutcome:
            self._begin_attempt(session)
            if cancel_token is None:
                outcome = await self._guard_async(operation)
            elif cancel_token.is_cancelled:
                outcome = AttemptOutcome.cancelled()
            else:
                outcome = await self._race(operation, cancel_token)
            session.record(outcome)
            return outcome

        async def _sleep(seconds: float) -> None:
            if cancel_token is None:
                await self._async_sleep(seconds)
            else:
                await cancel_token.wait_async(seconds)

        retrying = AsyncRetrying(sleep=_sleep, **self._policy(session, config))
        outcome = await retrying(_attempt)
        return self._finish(session, outcome)

    async def execute_async(
        self,
        operation: AsyncOperation,
        config: RetryConfiguration,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AttemptOutcome:
        """Run an asynchronous operation with retry and return the final outcome"""
        session = await self.run_async(operation, config, cancel_token)
        return session.last_outcome

    async def _race(self, operation: AsyncOperation, cancel_token: CancellationToken) -> AttemptOutcome:
        """Await the operation unless the token is cancelled first"""
        task = asyncio.ensure_future(self._guard_async(operation))
        waiter = cancel_token.waiter()
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task.done() and not task.cancelled():
            return task.result()

        # Let the transport unwind its cancellation before reporting
        await asyncio.wait({task})
        return AttemptOutcome.cancelled()
