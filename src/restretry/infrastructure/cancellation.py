"""Cancellation signal shared between a caller and a running retry loop.

A token can be cancelled from any thread. Synchronous code blocks on
``wait``; coroutines await ``wait_async`` or race an in-flight call against
``waiter()``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe, one-shot cancellation flag"""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Signal cancellation. Idempotent."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        logger.debug("Cancellation requested")
        for callback in callbacks:
            callback()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or timeout elapses

        Returns:
            True if the token was cancelled
        """
        return self._event.wait(timeout)

    def waiter(self) -> "asyncio.Future[None]":
        """Future on the running loop that resolves once the token is cancelled.

        Cancel the returned future when it is no longer needed so the
        callback is released.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[None] = loop.create_future()

        def _resolve() -> None:
            if not future.done():
                future.set_result(None)

        def _wake() -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve)

        if not self._add_callback(_wake):
            future.set_result(None)
            return future
        future.add_done_callback(lambda _: self._remove_callback(_wake))
        return future

    async def wait_async(self, timeout: Optional[float] = None) -> bool:
        """Wait without blocking the event loop

        Returns:
            True if the token was cancelled
        """
        if self.is_cancelled:
            return True
        waiter = self.waiter()
        try:
            done, _ = await asyncio.wait({waiter}, timeout=timeout)
        finally:
            waiter.cancel()
        return bool(done)

    def _add_callback(self, callback: Callable[[], None]) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self._callbacks.append(callback)
            return True

    def _remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
