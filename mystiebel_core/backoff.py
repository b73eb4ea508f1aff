"""Reconnect delay policy."""

from __future__ import annotations

from .const import RECONNECT_INITIAL_DELAY, RECONNECT_MAX_DELAY


class ReconnectPolicy:
    """Exponential backoff between connection attempts.

    The first failure waits ``floor`` seconds; each further consecutive
    failure doubles the delay up to ``ceiling``. :meth:`reset` is called
    once the session is fully established.
    """

    def __init__(
        self,
        floor: float = RECONNECT_INITIAL_DELAY,
        ceiling: float = RECONNECT_MAX_DELAY,
        *,
        factor: float = 2,
    ) -> None:
        if floor <= 0 or ceiling < floor:
            raise ValueError("Backoff requires 0 < floor <= ceiling")
        if factor < 1:
            raise ValueError("Backoff factor must be at least 1")
        self._floor = floor
        self._ceiling = ceiling
        self._factor = factor
        self._current = floor
        self._failures = 0

    @property
    def floor(self) -> float:
        return self._floor

    @property
    def ceiling(self) -> float:
        return self._ceiling

    @property
    def failures(self) -> int:
        """Consecutive failures since the last reset."""
        return self._failures

    @property
    def current_delay(self) -> float:
        """Delay the next call to :meth:`next_delay` will return."""
        return self._current

    def next_delay(self) -> float:
        """Record a failure and return how long to wait before retrying."""
        delay = self._current
        self._current = min(self._current * self._factor, self._ceiling)
        self._failures += 1
        return delay

    def reset(self) -> None:
        self._current = self._floor
        self._failures = 0
