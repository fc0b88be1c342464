# energygrid_aggregator/scheduler.py
"""
Single-lane driver that runs every batch through the retrying executor.

Batches are processed strictly one at a time and in submission order: batch
k+1 is not started until batch k has succeeded or exhausted its retries.
Because only one batch is ever in flight, the success and failure logs come
out in submission order regardless of retries or latency.

A failed batch never stops the run. Its last error is recorded and the
scheduler moves on to the next batch.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from energygrid_aggregator.executor import RetryingRequestExecutor
from energygrid_aggregator.models import (
    BatchFailure,
    CollectionResult,
    RequestFailure,
    RequestOutcome,
    WorkItem,
)

__all__: list[str] = ['BatchScheduler', 'ProgressCallback']

logger: logging.Logger = logging.getLogger(__name__)

# Called after each batch resolves: (completed_count, total_count, item, outcome)
ProgressCallback = Callable[[int, int, WorkItem, RequestOutcome], None]


class BatchScheduler:
    """
    Drives an ordered sequence of work items to completion.

    Example:
        >>> scheduler = BatchScheduler(executor)
        >>> result = scheduler.run_all(batches)
        >>> print(result.success_count, result.failure_count)
    """

    def __init__(
        self,
        executor: RetryingRequestExecutor,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._executor: RetryingRequestExecutor = executor
        self._progress_callback: ProgressCallback | None = progress_callback

    def run_all(self, items: Sequence[WorkItem]) -> CollectionResult:
        """
        Process every work item exactly once, in order.

        Args:
            items: Batches to query, in submission order.

        Returns:
            CollectionResult with the `data` arrays of successful batches and
            the failed batches with their last error, both in submission order.
        """
        result = CollectionResult(batches_total=len(items))
        total: int = len(items)

        logger.info('Starting collection of %d batches', total)

        for position, item in enumerate(items, start=1):
            outcome: RequestOutcome = self._executor.run(item)

            if isinstance(outcome, RequestFailure):
                result.failures.append(BatchFailure(item=item, error=outcome))
                logger.error(
                    'Batch %d/%d failed: %s (%s)',
                    position,
                    total,
                    item.describe(),
                    outcome,
                )
            else:
                self._record_success(result, item, outcome.payload, position, total)

            self._report_progress(position, total, item, outcome)

        logger.info(
            'Collection finished: %d/%d batches succeeded, %d failed',
            result.success_count,
            total,
            result.failure_count,
        )

        return result

    def _record_success(
        self,
        result: CollectionResult,
        item: WorkItem,
        payload: Any,
        position: int,
        total: int,
    ) -> None:
        device_data: Any = payload.get('data') if isinstance(payload, dict) else None

        if not isinstance(device_data, list):
            result.batches_without_data += 1
            logger.warning(
                'Batch %d/%d succeeded without a data array: %s',
                position,
                total,
                item.describe(),
            )
            return

        records: list[dict[str, Any]] = [
            dict(record) for record in device_data if isinstance(record, Mapping)
        ]
        skipped: int = len(device_data) - len(records)
        if skipped:
            result.records_skipped += skipped
            logger.warning(
                'Batch %d/%d returned %d malformed device records: %s',
                position,
                total,
                skipped,
                item.describe(),
            )

        result.successes.append(records)
        logger.debug(
            'Batch %d/%d succeeded: %s, %d records',
            position,
            total,
            item.describe(),
            len(records),
        )

    def _report_progress(
        self,
        position: int,
        total: int,
        item: WorkItem,
        outcome: RequestOutcome,
    ) -> None:
        logger.info('Progress: %d/%d (%.1f%%)', position, total, position / total * 100)

        if self._progress_callback is None:
            return

        try:
            self._progress_callback(position, total, item, outcome)
        except Exception:
            logger.exception('Progress callback failed for %s', item.describe())
