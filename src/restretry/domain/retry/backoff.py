"""Delay computation between retry attempts.

Every kind maps to a function of (attempt_index, base, rng). Results are
clamped to ``RetryConfiguration.max_delay``.
"""

from __future__ import annotations

import random
from functools import lru_cache
from typing import Callable, Dict, Optional

from restretry.domain.config.retry import BackoffKind, RetryConfiguration

# random.Random methods are safe to call from several threads
_shared_rng = random.Random()


@lru_cache(maxsize=None)
def fibonacci(n: int) -> int:
    """Return the n-th Fibonacci number (fib(0)=0, fib(1)=1)"""
    if n < 0:
        raise ValueError("n must be non-negative")
    a, b = 0, 1
    for _ in range(n):
        a, b = b, a + b
    return a


def _constant(attempt: int, base: float, rng: random.Random) -> float:
    return base


def _linear(attempt: int, base: float, rng: random.Random) -> float:
    return base * (attempt + 1)


def _exponential(attempt: int, base: float, rng: random.Random) -> float:
    return base * 2**attempt


def _exponential_with_jitter(attempt: int, base: float, rng: random.Random) -> float:
    return base * 2**attempt * rng.random()


def _random(attempt: int, base: float, rng: random.Random) -> float:
    return rng.uniform(base, base * 2)


def _fibonacci(attempt: int, base: float, rng: random.Random) -> float:
    return base * fibonacci(attempt)


def _exponential_full_jitter(attempt: int, base: float, rng: random.Random) -> float:
    return rng.uniform(0, base * 2**attempt)


def _no_retry(attempt: int, base: float, rng: random.Random) -> float:
    # Never consulted: the orchestrator does not retry at all
    return 0.0


_STRATEGIES: Dict[BackoffKind, Callable[[int, float, random.Random], float]] = {
    BackoffKind.CONSTANT: _constant,
    BackoffKind.LINEAR: _linear,
    BackoffKind.EXPONENTIAL: _exponential,
    BackoffKind.EXPONENTIAL_WITH_JITTER: _exponential_with_jitter,
    BackoffKind.RANDOM: _random,
    BackoffKind.FIBONACCI: _fibonacci,
    BackoffKind.EXPONENTIAL_FULL_JITTER: _exponential_full_jitter,
    BackoffKind.NO_RETRY: _no_retry,
}


def compute_delay(
    attempt_index: int,
    config: RetryConfiguration,
    rng: Optional[random.Random] = None,
) -> float:
    """Compute the delay before a retry.

    Args:
        attempt_index: Zero-based retry index (first retry = 0)
        config: Retry configuration supplying base delay, kind and clamp
        rng: Random source for the randomized kinds (shared one if None)

    Returns:
        Delay in seconds, within [0, config.max_delay]

    Raises:
        ValueError: If attempt_index is negative
    """
    if attempt_index < 0:
        raise ValueError("attempt_index must be non-negative")

    strategy = _STRATEGIES[config.backoff]
    try:
        delay = strategy(attempt_index, config.base_delay, rng or _shared_rng)
    except OverflowError:
        # 2**attempt as float overflows for very large indexes; a zero base stays zero
        delay = config.max_delay if config.base_delay > 0 else 0.0
    return max(0.0, min(delay, config.max_delay))


def delay_schedule(
    config: RetryConfiguration,
    attempts: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> list:
    """Delays that would be waited before each retry

    Args:
        config: Retry configuration
        attempts: Number of retries (defaults to config.max_attempts)
        rng: Random source for the randomized kinds
    """
    if config.backoff is BackoffKind.NO_RETRY:
        return []
    count = config.max_attempts if attempts is None else attempts
    return [compute_delay(i, config, rng) for i in range(count)]
