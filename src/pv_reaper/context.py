"""
Deadline and cancellation carrier passed through a cleanup run.

A Context holds an absolute deadline (on the clock it was built with) and a
cancellation flag. Every EC2 call and every sleep between poll sweeps is
bounded by it.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class Context:
    """
    Deadline plus cancellation signal.

    Args:
        deadline: Absolute deadline on the ``clock`` timeline, or None.
        clock: Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        deadline: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._deadline = deadline
        self._clock = clock
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(
        cls,
        seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> "Context":
        """Context whose deadline is ``seconds`` from now."""
        return cls(deadline=clock() + seconds, clock=clock)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Signal cancellation; wakes any pending wait()."""
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline (0 once passed), or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def expired(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.expired()

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to ``seconds``, returning early on cancel or deadline.

        Returns:
            True if the context is done after waking.
        """
        timeout = seconds
        remaining = self.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        if timeout > 0:
            self._cancelled.wait(timeout)
        return self.done()
