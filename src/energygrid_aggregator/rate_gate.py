# energygrid_aggregator/rate_gate.py
"""
Single-slot admission gate enforcing a minimum spacing between requests.

Every physical request to the device query API, retries included, must pass
through RateGate.admit() first. The gate remembers when it last admitted a
caller and suspends the next caller until `min_interval_seconds` has elapsed.

Fairness:
---------
Callers are served strictly in arrival order. Each caller draws a ticket on
entry and waits until its ticket is being served; only the serving caller
sleeps on the timer, so waking several callers at once can never admit more
than one of them per interval.

Thread Safety:
--------------
The gate is safe to share between threads. The scheduler in this package is
single-lane, so in practice there is one caller at a time, but the ticket
queue keeps the spacing guarantee if more lanes are ever added.
"""

import logging
import threading
import time
from collections.abc import Callable

__all__: list[str] = ['RateGate']

logger: logging.Logger = logging.getLogger(__name__)


class RateGate:
    """
    FIFO admission gate with a minimum interval between admissions.

    Attributes:
        min_interval_seconds: Minimum spacing between two admissions.
        admission_count: Number of admissions granted so far.
        last_admission: Clock reading of the latest admission, or None if
            nothing has been admitted yet.

    Example:
        >>> gate = RateGate(min_interval_seconds=1.1)
        >>> gate.admit()  # returns immediately
        >>> gate.admit()  # returns ~1.1s later
    """

    def __init__(
        self,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the gate.

        Args:
            min_interval_seconds: Minimum spacing between admissions. Must be
                non-negative.
            clock: Monotonic clock returning seconds. Injectable for tests.
            sleep: Blocking sleep function. Injectable for tests.

        Raises:
            ValueError: If min_interval_seconds is negative.
        """
        if min_interval_seconds < 0:
            raise ValueError(
                f'min_interval_seconds must be non-negative, got: {min_interval_seconds}'
            )

        self._min_interval_seconds: float = min_interval_seconds
        self._clock: Callable[[], float] = clock
        self._sleep: Callable[[float], None] = sleep

        # None stands for "far past": the first admission never waits
        self._last_admission: float | None = None
        self._admission_count: int = 0

        self._condition: threading.Condition = threading.Condition()
        self._next_ticket: int = 0
        self._now_serving: int = 0

    @property
    def min_interval_seconds(self) -> float:
        return self._min_interval_seconds

    @property
    def admission_count(self) -> int:
        return self._admission_count

    @property
    def last_admission(self) -> float | None:
        return self._last_admission

    @property
    def queue_length(self) -> int:
        """Callers currently waiting for or holding the admission slot."""
        with self._condition:
            return self._next_ticket - self._now_serving

    def admit(self) -> None:
        """
        Block until this caller may send a request.

        Returns once at least `min_interval_seconds` has passed since the
        previous admission and every caller that arrived earlier has been
        admitted.
        """
        with self._condition:
            ticket: int = self._next_ticket
            self._next_ticket += 1
            while ticket != self._now_serving:
                self._condition.wait()

        try:
            waited_seconds: float = self._wait_for_interval()
            self._last_admission = self._clock()
            self._admission_count += 1
            logger.debug(
                'Admission %d granted (waited %.3fs)',
                self._admission_count,
                waited_seconds,
            )
        finally:
            with self._condition:
                self._now_serving += 1
                self._condition.notify_all()

    def _wait_for_interval(self) -> float:
        """
        Sleep until the interval since the last admission has elapsed.

        Loops because a sleep may return early; the spacing is re-checked
        against the clock after every wake-up.

        Returns:
            Total seconds slept.
        """
        waited_seconds: float = 0.0

        if self._last_admission is None:
            return waited_seconds

        while True:
            elapsed: float = self._clock() - self._last_admission
            remaining: float = self._min_interval_seconds - elapsed
            if remaining <= 0:
                return waited_seconds
            self._sleep(remaining)
            waited_seconds += remaining
