"""
Request epochs for cooperative cancellation.

Each session hands out monotonically increasing tokens. Starting a new
request makes older tokens stale; pipeline stages call ``token.check()``
before committing anything, so abandoned requests can finish their upstream
calls without overwriting newer results.
"""

import itertools
import logging
import time
from typing import Callable, Optional

from ..errors import RequestSupersededError
from ..mapping.cache.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


class RequestEpoch:
    """Generation counter for one session."""

    def __init__(self, session_id: str = "default"):
        self.session_id = session_id
        self._generation = 0

    @property
    def current(self) -> int:
        return self._generation

    def next_token(self) -> 'RequestToken':
        self._generation += 1
        return RequestToken(self, self._generation)


class RequestToken:
    """Handle passed through a request's pipeline."""

    def __init__(self, epoch: RequestEpoch, generation: int):
        self.epoch = epoch
        self.generation = generation

    @property
    def is_current(self) -> bool:
        return self.generation == self.epoch.current

    def check(self, stage: str) -> None:
        """
        Raises:
            RequestSupersededError: If a newer request exists for the session
        """
        if not self.is_current:
            logger.info(f"Discarding stale result at '{stage}' "
                        f"(session {self.epoch.session_id}, generation {self.generation} "
                        f"< {self.epoch.current})")
            raise RequestSupersededError(
                "A newer route request replaced this one",
                {"session_id": self.epoch.session_id, "stage": stage},
            )


class EpochRegistry:
    """Epochs per session id, expiring idle sessions."""

    def __init__(self, ttl_s: float = 3600.0, max_sessions: int = 1000,
                 clock: Callable[[], float] = time.monotonic):
        self._epochs = TTLCache(ttl_s, max_sessions, clock=clock, name="sessions")
        self._anonymous = itertools.count(1)

    def token_for(self, session_id: Optional[str]) -> RequestToken:
        """New token for a session; requests without a session never supersede each other."""
        if not session_id:
            session_id = f"anonymous-{next(self._anonymous)}"
        epoch = self._epochs.get(session_id)
        if epoch is None:
            epoch = RequestEpoch(session_id)
        self._epochs.put(session_id, epoch)
        return epoch.next_token()
