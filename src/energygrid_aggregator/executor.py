# energygrid_aggregator/executor.py
"""
Bounded retry with linear backoff around the device query transport.

Retry Behavior:
---------------
Each attempt first acquires a fresh admission from the RateGate and then
performs one transport call, so retries are paced exactly like first
attempts. After a retryable failure (429, 5xx, network error) the executor
waits `base_delay_seconds * attempt_number` before trying again:

    max_retries=3, base_delay_seconds=2.0
      attempt 1 fails -> wait 2s
      attempt 2 fails -> wait 4s
      attempt 3 fails -> last failure returned

Non-retryable failures are returned immediately, and so is success. The
executor never raises for a failed request: the caller always receives a
RequestOutcome.
"""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Protocol

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    wait_incrementing,
)

from energygrid_aggregator.models import RequestFailure, RequestOutcome, WorkItem
from energygrid_aggregator.rate_gate import RateGate

__all__: list[str] = ['BatchTransport', 'RetryingRequestExecutor']

logger: logging.Logger = logging.getLogger(__name__)


class BatchTransport(Protocol):
    """Anything that can send one batch of serial numbers and classify the result."""

    def send(self, serial_numbers: Sequence[str]) -> RequestOutcome: ...


def _is_retryable_failure(outcome: RequestOutcome) -> bool:
    return isinstance(outcome, RequestFailure) and outcome.retryable


def _return_last_outcome(retry_state: RetryCallState) -> RequestOutcome:
    """Hand back the final failure unchanged once the attempt budget is spent."""
    if retry_state.outcome is None:
        raise RuntimeError('Retry budget exhausted without any recorded attempt')
    return retry_state.outcome.result()


class RetryingRequestExecutor:
    """
    Runs one WorkItem to completion through the rate gate and transport.

    Attributes:
        max_retries: Total attempts per item, including the first one.
        base_delay_seconds: Base of the linear backoff.
    """

    def __init__(
        self,
        transport: BatchTransport,
        gate: RateGate,
        max_retries: int = 3,
        base_delay_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the executor.

        Args:
            transport: Performs a single classified request per call.
            gate: Shared admission gate; acquired before every attempt.
            max_retries: Total attempts per item (>= 1).
            base_delay_seconds: Backoff base; attempt k waits base * k.
            sleep: Blocking sleep used between attempts. Injectable for tests.

        Raises:
            ValueError: If max_retries < 1 or base_delay_seconds < 0.
        """
        if max_retries < 1:
            raise ValueError(f'max_retries must be at least 1, got: {max_retries}')
        if base_delay_seconds < 0:
            raise ValueError(
                f'base_delay_seconds must be non-negative, got: {base_delay_seconds}'
            )

        self._transport: BatchTransport = transport
        self._gate: RateGate = gate
        self._max_retries: int = max_retries
        self._base_delay_seconds: float = base_delay_seconds
        self._sleep: Callable[[float], None] = sleep

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def base_delay_seconds(self) -> float:
        return self._base_delay_seconds

    def run(self, item: WorkItem) -> RequestOutcome:
        """
        Execute a work item, retrying transient failures within budget.

        Args:
            item: Batch of serial numbers to query.

        Returns:
            The first success, the first non-retryable failure, or the last
            retryable failure once max_retries attempts have been made.
        """
        retrying = Retrying(
            retry=retry_if_result(_is_retryable_failure),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_incrementing(
                start=self._base_delay_seconds,
                increment=self._base_delay_seconds,
            ),
            sleep=self._sleep,
            before_sleep=self._make_retry_logger(item),
            retry_error_callback=_return_last_outcome,
        )

        return retrying(self._attempt, item)

    def _attempt(self, item: WorkItem) -> RequestOutcome:
        self._gate.admit()
        return self._transport.send(item.serial_numbers)

    def _make_retry_logger(self, item: WorkItem) -> Callable[[RetryCallState], None]:
        max_retries: int = self._max_retries

        def log_retry(retry_state: RetryCallState) -> None:
            failure: RequestOutcome | None = (
                retry_state.outcome.result() if retry_state.outcome else None
            )
            wait_seconds: float = (
                retry_state.next_action.sleep if retry_state.next_action else 0.0
            )
            logger.warning(
                'Retry %d/%d for %s after %s (waiting %.1fs)',
                retry_state.attempt_number,
                max_retries,
                item.describe(),
                failure,
                wait_seconds,
            )

        return log_retry
