"""Correlation identifiers for outbound realtime requests."""

from __future__ import annotations

import logging
import random

from .const import MSG_ID_LONG_MAX, MSG_ID_LONG_MIN, MSG_ID_MAX, MSG_ID_MIN

_LOGGER = logging.getLogger(__name__)

HISTORY_CAPACITY = 1000
MAX_ATTEMPTS = 100


class CorrelationIdAllocator:
    """Draw random request ids, avoiding recently issued ones.

    Issued ids are remembered in a history of fixed capacity. Once the
    history is full it is cleared in one step and :attr:`generation` is
    incremented, so ids from an earlier generation may be issued again.
    Uniqueness is best effort: after ``max_attempts`` colliding draws the
    last candidate is returned anyway.
    """

    def __init__(
        self,
        *,
        capacity: int = HISTORY_CAPACITY,
        max_attempts: int = MAX_ATTEMPTS,
        rng: random.Random | None = None,
    ) -> None:
        if capacity < 1 or max_attempts < 1:
            raise ValueError("capacity and max_attempts must be positive")
        self._capacity = capacity
        self._max_attempts = max_attempts
        self._rng = rng or random.Random()
        self._history: set[int] = set()
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of times the history has been reset."""
        return self._generation

    def __len__(self) -> int:
        return len(self._history)

    def __contains__(self, msg_id: object) -> bool:
        return msg_id in self._history

    def allocate(self, long_form: bool = False) -> int:
        """Return a new id from the short (read) or long (write) range."""
        low, high = (MSG_ID_LONG_MIN, MSG_ID_LONG_MAX) if long_form else (MSG_ID_MIN, MSG_ID_MAX)

        if len(self._history) >= self._capacity:
            self._history.clear()
            self._generation += 1
            _LOGGER.debug("Id history reset (generation %d)", self._generation)

        candidate = self._rng.randint(low, high)
        attempts = 1
        while candidate in self._history and attempts < self._max_attempts:
            candidate = self._rng.randint(low, high)
            attempts += 1

        if candidate in self._history:
            _LOGGER.warning(
                "Reusing id %d after %d colliding draws", candidate, attempts
            )

        self._history.add(candidate)
        return candidate
