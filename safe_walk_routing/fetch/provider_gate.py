"""
Per-provider rate limiting, request deduplication and retries.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

from ..errors import ProviderNetworkError

logger = logging.getLogger(__name__)


class ProviderGate:
    """
    Gate in front of one upstream provider.

    - at most ``max_concurrent`` calls in flight; extra callers queue in
      submission order
    - at least ``min_interval_s`` between successive dispatches
    - identical keys already in flight share one upstream call
    - ProviderNetworkError is retried with exponential backoff; nothing
      else is retried
    """

    def __init__(self, name: str, max_concurrent: int = 3, min_interval_s: float = 0.08,
                 retry_attempts: int = 3, retry_backoff_s: float = 0.2,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.name = name
        self.max_concurrent = max_concurrent
        self.min_interval_s = min_interval_s
        self.retry_attempts = retry_attempts
        self.retry_backoff_s = retry_backoff_s
        self._clock = clock
        self._sleep = sleep
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._inflight: Dict[Hashable, asyncio.Task] = {}
        self.dispatched = 0
        self.deduplicated = 0

    def _bind_loop(self) -> None:
        # asyncio primitives belong to one loop; rebuild them when a new loop runs us
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._loop = loop
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
            self._spacing_lock = asyncio.Lock()
            self._last_dispatch: Optional[float] = None
            self._inflight = {}

    async def run(self, key: Hashable, func: Callable[..., Any], *args: Any) -> Any:
        """
        Call ``func(*args)`` in a worker thread through the gate.

        Args:
            key: Deduplication key (normally the geodata cache key)
            func: Synchronous provider method
            *args: Arguments for ``func``

        Returns:
            The provider result

        Raises:
            ProviderError: When the provider fails after retries
        """
        self._bind_loop()
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._call_with_retries(func, *args))
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            self.deduplicated += 1
            logger.debug(f"{self.name}: joined in-flight request {key}")
        # shield so one abandoned waiter does not cancel the shared call
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            task.exception()  # mark retrieved; waiters re-raise it themselves

    async def _call_with_retries(self, func: Callable[..., Any], *args: Any) -> Any:
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await self._dispatch(func, *args)
            except ProviderNetworkError as e:
                if attempt == self.retry_attempts:
                    logger.error(f"{self.name}: giving up after {attempt} attempts: {e}")
                    raise
                delay = self.retry_backoff_s * (2 ** (attempt - 1))
                logger.warning(f"{self.name}: attempt {attempt} failed ({e}), retrying in {delay:.2f}s")
                await self._sleep(delay)

    async def _dispatch(self, func: Callable[..., Any], *args: Any) -> Any:
        async with self._semaphore:
            async with self._spacing_lock:
                if self._last_dispatch is not None:
                    wait = self.min_interval_s - (self._clock() - self._last_dispatch)
                    if wait > 0:
                        await self._sleep(wait)
                self._last_dispatch = self._clock()
            self.dispatched += 1
            return await asyncio.to_thread(func, *args)
