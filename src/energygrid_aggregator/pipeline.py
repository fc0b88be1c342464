# energygrid_aggregator/pipeline.py
"""
End-to-end collection run: serials -> batches -> scheduler -> report.

Usage:
------
    from energygrid_aggregator.pipeline import AggregatorPipeline

    # One-liner for scripts
    AggregatorPipeline.from_config_file('config/aggregator_config.yaml').run()

    # Or with access to the results
    pipeline = AggregatorPipeline(config)
    report = pipeline.run()
    print(report.summary.online_percentage)

Design Decisions:
-----------------
- Setup is fatal, collection is not: configuration or construction problems
  raise AggregatorError before any request is sent, while failed batches
  are recorded and reported without aborting the run. A report export that
  fails after collection is logged and kept in `export_error`.

- One RateGate is shared by every request attempt of the run, retries
  included, so the request spacing holds across batch boundaries.

- No progress is persisted. A rerun starts from the first batch again.
"""

import logging
import time
from collections.abc import Callable
from pathlib import Path

import yaml

from energygrid_aggregator.client import DeviceQueryClient
from energygrid_aggregator.common import EXPORT_ERRORS, ReportFileHandler
from energygrid_aggregator.config import AggregatorConfig, load_config
from energygrid_aggregator.devices import (
    AggregateReport,
    aggregate_results,
    create_batches,
    generate_serial_numbers,
)
from energygrid_aggregator.executor import BatchTransport, RetryingRequestExecutor
from energygrid_aggregator.models import CollectionResult, WorkItem
from energygrid_aggregator.rate_gate import RateGate
from energygrid_aggregator.report import render_report
from energygrid_aggregator.scheduler import BatchScheduler, ProgressCallback

__all__: list[str] = ['AggregatorError', 'AggregatorPipeline']

logger: logging.Logger = logging.getLogger(__name__)


class AggregatorError(Exception):
    """Raised when the aggregator cannot be set up and no batch was processed."""


class AggregatorPipeline:
    """
    Orchestrates one complete collection run.

    Attributes:
        config: The validated configuration (read-only).
        collection: Scheduler output of the latest run, or None before run().
        report: Aggregate report of the latest run, or None before run().
        execution_seconds: Duration of the latest run, or None before run().
    """

    def __init__(
        self,
        config: AggregatorConfig,
        transport: BatchTransport | None = None,
        progress_callback: ProgressCallback | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the pipeline from a validated configuration.

        Args:
            config: Aggregator configuration.
            transport: Optional transport replacing the HTTP client (for tests
                or alternative backends). When None, a DeviceQueryClient is
                created and closed by run().
            progress_callback: Called after each batch resolves.
            sleep: Blocking sleep used by the rate gate and retry backoff.
            clock: Monotonic clock used by the rate gate.

        Raises:
            AggregatorError: If the output handler cannot be initialized.
        """
        self._config: AggregatorConfig = config
        self._transport: BatchTransport | None = transport
        self._progress_callback: ProgressCallback | None = progress_callback
        self._sleep: Callable[[float], None] = sleep
        self._clock: Callable[[], float] = clock

        try:
            self._file_handler: ReportFileHandler = ReportFileHandler(config.output)
        except OSError as error:
            raise AggregatorError(f'Cannot prepare report output: {error}') from error

        self._collection: CollectionResult | None = None
        self._report: AggregateReport | None = None
        self._execution_seconds: float | None = None
        self._export_error: Exception | None = None

        logger.info(
            'Pipeline initialized: endpoint=%s, devices=%d, batch_size=%d, '
            'interval=%.2fs, max_retries=%d',
            config.service.endpoint_url,
            config.devices.count,
            config.scheduling.batch_size,
            config.scheduling.min_request_interval_seconds,
            config.scheduling.max_retries,
        )

    @classmethod
    def from_config_file(cls, config_path: Path | str) -> 'AggregatorPipeline':
        """
        Load configuration from YAML and build a pipeline.

        Raises:
            AggregatorError: If the file is missing, malformed or invalid.
        """
        try:
            config: AggregatorConfig = load_config(config_path)
        except (OSError, ValueError, yaml.YAMLError) as error:
            raise AggregatorError(str(error)) from error
        return cls(config)

    @property
    def config(self) -> AggregatorConfig:
        return self._config

    @property
    def collection(self) -> CollectionResult | None:
        return self._collection

    @property
    def report(self) -> AggregateReport | None:
        return self._report

    @property
    def execution_seconds(self) -> float | None:
        return self._execution_seconds

    @property
    def export_error(self) -> Exception | None:
        """Error of the latest report export, or None if it succeeded or was off."""
        return self._export_error

    def build_work_items(self) -> list[WorkItem]:
        """Generate the device population and slice it into batches."""
        device_config = self._config.devices
        serial_numbers: list[str] = generate_serial_numbers(
            count=device_config.count,
            prefix=device_config.serial_prefix,
            width=device_config.serial_width,
        )
        logger.info(
            'Generated %d serial numbers (%s to %s)',
            len(serial_numbers),
            serial_numbers[0],
            serial_numbers[-1],
        )

        work_items: list[WorkItem] = create_batches(
            serial_numbers, self._config.scheduling.batch_size
        )
        logger.info(
            'Created %d batches of at most %d devices',
            len(work_items),
            self._config.scheduling.batch_size,
        )
        return work_items

    def run(self) -> AggregateReport:
        """
        Execute the collection run.

        A failed report export does not fail the run: the error is logged
        and kept in `export_error`, and the console report stays available.

        Returns:
            The aggregate report. Failed batches are available through
            `collection.failures`.

        Raises:
            AggregatorError: If the HTTP client cannot be created.
        """
        start_time: float = time.perf_counter()
        work_items: list[WorkItem] = self.build_work_items()

        if self._transport is not None:
            collection: CollectionResult = self._collect(self._transport, work_items)
        else:
            try:
                client = DeviceQueryClient(
                    self._config.service,
                    max_batch_size=self._config.scheduling.batch_size,
                )
            except (OSError, ValueError) as error:
                raise AggregatorError(
                    f'Cannot create device query client: {error}'
                ) from error

            with client:
                collection = self._collect(client, work_items)

        report: AggregateReport = aggregate_results(collection.successes)
        execution_seconds: float = time.perf_counter() - start_time

        self._collection = collection
        self._report = report
        self._execution_seconds = execution_seconds

        self._export_error = None
        if self._file_handler.enabled:
            try:
                self._file_handler.save(report, collection.failures, execution_seconds)
            except EXPORT_ERRORS as error:
                self._export_error = error
                logger.error('Report export failed after collection: %s', error)

        logger.info(
            'Run complete in %.2fs: %d devices reported, %d failed batches',
            execution_seconds,
            report.summary.total_devices,
            collection.failure_count,
        )

        return report

    def render(self) -> str:
        """
        Render the console report of the latest run.

        Raises:
            RuntimeError: If run() has not completed yet.
        """
        if self._report is None or self._collection is None:
            raise RuntimeError('run() must complete before rendering the report')

        return render_report(
            self._report,
            self._collection.failures,
            self._execution_seconds or 0.0,
            sample_size=self._config.output.sample_size,
        )

    def _collect(
        self,
        transport: BatchTransport,
        work_items: list[WorkItem],
    ) -> CollectionResult:
        scheduling = self._config.scheduling

        gate = RateGate(
            min_interval_seconds=scheduling.min_request_interval_seconds,
            clock=self._clock,
            sleep=self._sleep,
        )
        executor = RetryingRequestExecutor(
            transport=transport,
            gate=gate,
            max_retries=scheduling.max_retries,
            base_delay_seconds=scheduling.retry_base_delay_seconds,
            sleep=self._sleep,
        )
        scheduler = BatchScheduler(executor, progress_callback=self._progress_callback)

        estimated_seconds: float = len(work_items) * scheduling.min_request_interval_seconds
        logger.info(
            'Fetching %d batches (at least %.0fs at %.2fs per request)',
            len(work_items),
            estimated_seconds,
            scheduling.min_request_interval_seconds,
        )

        return scheduler.run_all(work_items)
