"""
Refresh state shared by every request that goes through one gateway.
"""

import asyncio
from typing import List


class RefreshState:
    """In-flight refresh flag plus the queue of requests waiting on it.

    Mutations never await, so under a single event loop the flag and the
    queue change together from every other task's point of view.
    """

    def __init__(self):
        self.is_refreshing = False
        self._waiters: List[asyncio.Future] = []

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    def begin(self) -> None:
        self.is_refreshing = True

    def enqueue(self) -> asyncio.Future:
        """Park a caller until the in-flight refresh settles."""
        if not self.is_refreshing:
            raise RuntimeError("No refresh in progress")
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return waiter

    def resolve_all(self, access_token: str) -> int:
        """Hand the new token to every waiter and reset to idle."""
        return self._drain(lambda waiter: waiter.set_result(access_token))

    def reject_all(self, error: BaseException) -> int:
        """Fail every waiter with the refresh error and reset to idle."""
        return self._drain(lambda waiter: waiter.set_exception(error))

    def _drain(self, settle) -> int:
        waiters, self._waiters = self._waiters, []
        self.is_refreshing = False
        settled = 0
        for waiter in waiters:
            # Cancelled callers leave orphaned futures behind
            if waiter.done():
                continue
            settle(waiter)
            settled += 1
        return settled

    def finish(self) -> None:
        """Return to idle; anything still queued is failed rather than dropped."""
        if self._waiters:
            self.reject_all(RuntimeError("Refresh ended without settling waiters"))
        self.is_refreshing = False
