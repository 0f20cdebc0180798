"""
TTL caching for expensive variables.

Exports declared with ``ttl_ms > 0`` are wrapped in a CachingVariable. The
wrapped producer runs at most once per TTL window per reader; concurrent
readers of an expired value may each recompute (last write wins).
"""

import logging
import time
from typing import Callable, Optional

from .variables import Variable

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class CachingVariable(Variable):
    """
    Variable that recomputes its inner value only after ``ttl_ms`` has elapsed.

    The clock is replaceable per variable (``set_clock``) so tests can drive
    time explicitly.
    """

    def __init__(self, inner: Variable, ttl_ms: int, clock: Optional[Clock] = None):
        super().__init__(inner.name, inner.doc, inner.expand)
        self.inner = inner
        self.ttl_ms = ttl_ms
        self.clock = clock or wall_clock_ms
        self._value = None
        self._last_update: Optional[int] = None

    def set_clock(self, clock: Clock) -> None:
        self.clock = clock

    @property
    def last_update(self) -> Optional[int]:
        return self._last_update

    def get_value(self):
        last_update = self._last_update
        if last_update is None or self.clock() - last_update >= self.ttl_ms:
            value = self.inner.get_value()
            self._value = value
            self._last_update = self.clock()
            logger.debug(f"Recomputed cached variable {self.name} at {self._last_update}")
            return value
        return self._value

    def get_doc(self) -> str:
        """Doc text with the last compute time (0 before the first read)."""
        last_update = self._last_update if self._last_update is not None else 0
        return f"{self.doc or ''} (last update: {last_update})"

    def is_live(self) -> bool:
        return self.inner.is_live()
