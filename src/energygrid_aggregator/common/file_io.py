# energygrid_aggregator/common/file_io.py
"""
Report export utilities for the energygrid_aggregator package.

Writes the final aggregate report to disk: the full JSON document (summary,
device records, failed batches) and, optionally, the flat device records as
a Parquet file for analysis tools.

Design Philosophy:
------------------
- Config injected at initialization defines output paths and compression
- Writes raise on errors (filesystem issues require explicit handling)
- Writes are atomic (temp file + rename) so a crash never leaves a
  half-written report behind
"""

import json
import logging
import tempfile
from collections.abc import Callable, Sequence
from contextlib import suppress
from pathlib import Path
from typing import Any, cast

import pandas as pd
from pyarrow import (
    ArrowInvalid as _ArrowInvalid,  # pyright: ignore[reportUnknownVariableType]
    ArrowTypeError as _ArrowTypeError,  # pyright: ignore[reportUnknownVariableType]
)

from energygrid_aggregator.config import OutputConfig
from energygrid_aggregator.devices import AggregateReport, devices_to_dataframe
from energygrid_aggregator.models import BatchFailure

ArrowInvalid: type[Exception] = cast(type[Exception], _ArrowInvalid)
ArrowTypeError: type[Exception] = cast(type[Exception], _ArrowTypeError)

# Everything a failed export can raise: filesystem errors and records that
# pyarrow cannot turn into a table
EXPORT_ERRORS: tuple[type[Exception], ...] = (
    OSError,
    ValueError,
    ArrowInvalid,
    ArrowTypeError,
)

__all__: list[str] = ['EXPORT_ERRORS', 'ReportFileHandler']

logger: logging.Logger = logging.getLogger(__name__)


def _write_atomically(target_path: Path, write: Callable[[Path], None]) -> None:
    """
    Run `write` against a temp file next to target_path, then rename it.

    The temp file lives in the same directory so the rename stays on one
    filesystem. On failure the temp file is removed and the error re-raised.
    """
    with tempfile.NamedTemporaryFile(
        mode='wb',
        suffix=f'{target_path.suffix}.tmp',
        dir=target_path.parent,
        delete=False,
    ) as temp_file:
        temp_path = Path(temp_file.name)

    try:
        write(temp_path)
        temp_path.replace(target_path)
    except EXPORT_ERRORS:
        with suppress(OSError):
            temp_path.unlink()
        raise


class ReportFileHandler:
    """
    Persists the aggregate report according to OutputConfig.

    Attributes:
        report_path: JSON report destination, or None if disabled.
        parquet_path: Parquet device export destination, or None if disabled.
    """

    def __init__(self, output_config: OutputConfig) -> None:
        """
        Initialize the handler, creating parent directories of enabled outputs.

        Raises:
            OSError: If a parent directory cannot be created.
        """
        self._output_config: OutputConfig = output_config

        for output_path in (output_config.report_path, output_config.parquet_path):
            if output_path is not None:
                output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug(
            'Initialized ReportFileHandler: report_path=%r, parquet_path=%r',
            output_config.report_path,
            output_config.parquet_path,
        )

    @property
    def report_path(self) -> Path | None:
        return self._output_config.report_path

    @property
    def parquet_path(self) -> Path | None:
        return self._output_config.parquet_path

    @property
    def enabled(self) -> bool:
        """Whether any file export is configured."""
        return self.report_path is not None or self.parquet_path is not None

    def save(
        self,
        report: AggregateReport,
        failures: Sequence[BatchFailure],
        execution_seconds: float | None = None,
    ) -> list[Path]:
        """
        Write every enabled export.

        Args:
            report: Aggregated summary and device records.
            failures: Failed batches to include in the JSON report.
            execution_seconds: Run duration to include in the JSON report.

        Returns:
            Paths written, in the order JSON then Parquet.

        Raises:
            OSError: File system errors (permissions, disk full, etc).
            ArrowInvalid, ArrowTypeError: Device records cannot be
                serialized to Parquet.
        """
        written_paths: list[Path] = []

        if self.report_path is not None:
            self.save_json(report, failures, execution_seconds)
            written_paths.append(self.report_path)

        if self.parquet_path is not None:
            self.save_parquet(report)
            written_paths.append(self.parquet_path)

        return written_paths

    def save_json(
        self,
        report: AggregateReport,
        failures: Sequence[BatchFailure],
        execution_seconds: float | None = None,
    ) -> None:
        """Write summary, devices and failures as one JSON document."""
        if self.report_path is None:
            raise ValueError('JSON report export is not configured')

        document: dict[str, Any] = report.to_dict()
        document['failedBatches'] = [failure.to_dict() for failure in failures]
        if execution_seconds is not None:
            document['summary']['executionTimeSeconds'] = round(execution_seconds, 2)

        def write(temp_path: Path) -> None:
            with temp_path.open('w', encoding='utf-8') as report_file:
                json.dump(document, report_file, indent=2)

        try:
            _write_atomically(self.report_path, write)
        except OSError:
            logger.exception('Failed to write JSON report to %r', self.report_path)
            raise

        logger.info(
            'Saved JSON report (%d devices, %d failed batches) to %r',
            len(report.devices),
            len(failures),
            self.report_path,
        )

    def save_parquet(self, report: AggregateReport) -> None:
        """Write the flat device records with a numeric power_kw column."""
        if self.parquet_path is None:
            raise ValueError('Parquet export is not configured')

        dataframe: pd.DataFrame = devices_to_dataframe(report.devices)
        if dataframe.empty:
            logger.warning('Saving empty device table to %r', self.parquet_path)

        compression = self._output_config.parquet_compression

        def write(temp_path: Path) -> None:
            dataframe.to_parquet(temp_path, index=False, compression=compression)

        try:
            _write_atomically(self.parquet_path, write)
        except EXPORT_ERRORS:
            logger.exception('Failed to write Parquet export to %r', self.parquet_path)
            raise

        logger.info(
            'Saved %d device records (compression=%r) to %r',
            len(dataframe),
            compression,
            self.parquet_path,
        )
