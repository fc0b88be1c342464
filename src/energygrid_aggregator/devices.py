# energygrid_aggregator/devices.py
"""
Device population, batch slicing and result aggregation.

These are the stateless producers and consumers around the request
scheduler: the serial numbers are generated once at startup, sliced into
WorkItems of at most `batch_size` devices, and the `data` arrays collected by
the scheduler are flattened and summarised into an AggregateReport at the end.

Report Shape:
-------------
The summary mirrors the JSON document downstream consumers already read:

    {
      "summary": {
        "totalDevices": 500,
        "onlineDevices": 412,
        "offlineDevices": 88,
        "onlinePercentage": "82.40%",
        "totalPowerKW": "1210.35 kW",
        "averagePowerKW": "2.42 kW",
        "generatedAt": "2025-06-01T12:00:00.000000Z"
      },
      "devices": [...]
    }
"""

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from energygrid_aggregator.config import MAX_BATCH_SIZE
from energygrid_aggregator.models import DeviceStatus, WorkItem, parse_power

__all__: list[str] = [
    'AggregateReport',
    'ReportSummary',
    'aggregate_results',
    'create_batches',
    'devices_to_dataframe',
    'generate_serial_numbers',
]

logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Population and Batching
# =============================================================================


def generate_serial_numbers(
    count: int,
    prefix: str = 'SN-',
    width: int = 3,
) -> list[str]:
    """
    Generate the canonical serial numbers of the device population.

    Args:
        count: Number of devices.
        prefix: Text prepended to each serial number.
        width: Minimum digit count; indices are zero-padded to this width.

    Returns:
        Serial numbers for indices 0..count-1, e.g. ['SN-000', 'SN-001', ...].

    Raises:
        ValueError: If count is negative or width is not positive.
    """
    if count < 0:
        raise ValueError(f'count must be non-negative, got: {count}')
    if width < 1:
        raise ValueError(f'width must be positive, got: {width}')

    return [f'{prefix}{index:0{width}d}' for index in range(count)]


def create_batches(
    serial_numbers: Sequence[str],
    batch_size: int = MAX_BATCH_SIZE,
) -> list[WorkItem]:
    """
    Slice serial numbers into ordered work items.

    Every batch except possibly the last holds exactly `batch_size` serial
    numbers. Order is preserved both within and across batches.

    Args:
        serial_numbers: Full device population in index order.
        batch_size: Maximum serial numbers per batch (1-10).

    Returns:
        WorkItems indexed from 0. Empty list for an empty population.

    Raises:
        ValueError: If batch_size is outside 1..10.
    """
    if not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise ValueError(
            f'batch_size must be between 1 and {MAX_BATCH_SIZE}, got: {batch_size}'
        )

    return [
        WorkItem(
            index=batch_index,
            serial_numbers=tuple(serial_numbers[start : start + batch_size]),
        )
        for batch_index, start in enumerate(range(0, len(serial_numbers), batch_size))
    ]


# =============================================================================
# Aggregation
# =============================================================================


class ReportSummary(BaseModel):
    """
    Summary statistics over all collected device records.

    Serialized with camelCase keys (`totalDevices`, `onlinePercentage`, ...).
    Formatted fields carry two decimals and their unit.
    """

    model_config = ConfigDict(
        extra='forbid',
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    total_devices: int
    online_devices: int
    offline_devices: int
    online_percentage: str
    total_power_kw: str = Field(alias='totalPowerKW')
    average_power_kw: str = Field(alias='averagePowerKW')
    generated_at: datetime


class AggregateReport(BaseModel):
    """
    Read-only view of a finished collection run.

    Attributes:
        summary: Device counts, power totals and generation time.
        devices: Flat device records in collection order.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    summary: ReportSummary
    devices: list[dict[str, Any]] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dictionary with camelCase summary keys."""
        return self.model_dump(mode='json', by_alias=True)


def devices_to_dataframe(devices: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    """
    Build a DataFrame of device records with a numeric `power_kw` column.

    Missing `sn`, `power`, `status` or `last_updated` keys become empty
    columns so downstream code can rely on them.

    Args:
        devices: Flat device records as returned by the API.

    Returns:
        DataFrame with one row per device.
    """
    dataframe: pd.DataFrame = pd.DataFrame.from_records(list(devices))

    for column in ('sn', 'power', 'status', 'last_updated'):
        if column not in dataframe.columns:
            dataframe[column] = None

    dataframe['power_kw'] = dataframe['power'].map(parse_power).astype('float64')
    return dataframe


def _format_kw(value: float) -> str:
    return f'{value:.2f} kW'


def aggregate_results(
    results: Sequence[Sequence[Any]],
    generated_at: datetime | None = None,
) -> AggregateReport:
    """
    Flatten collected `data` arrays and compute the summary.

    Entries that are not mappings are skipped with a warning. Power values
    are read with leading-number semantics ('2.45 kW' -> 2.45);
    unparseable values count as zero. With no devices at all, counts are zero
    and percentages/averages are reported as 0.00 instead of dividing by zero.

    Args:
        results: One `data` array per successful batch, in collection order.
        generated_at: Report timestamp; defaults to now (UTC).

    Returns:
        AggregateReport with summary and flat device list.
    """
    devices: list[dict[str, Any]] = [
        dict(record)
        for batch in results
        for record in batch
        if isinstance(record, Mapping)
    ]
    skipped_records: int = sum(len(batch) for batch in results) - len(devices)
    if skipped_records:
        logger.warning(
            'Ignoring %d device records that are not objects', skipped_records
        )
    if generated_at is None:
        generated_at = datetime.now(UTC)

    total_devices: int = len(devices)
    online_devices: int = 0
    offline_devices: int = 0
    total_power: float = 0.0

    if devices:
        dataframe: pd.DataFrame = devices_to_dataframe(devices)
        statuses: pd.Series = dataframe['status']
        online_devices = int((statuses == DeviceStatus.ONLINE.value).sum())
        offline_devices = int((statuses == DeviceStatus.OFFLINE.value).sum())
        total_power = float(dataframe['power_kw'].sum())

    online_percentage: float = (
        online_devices / total_devices * 100 if total_devices else 0.0
    )
    average_power: float = total_power / total_devices if total_devices else 0.0

    summary = ReportSummary(
        total_devices=total_devices,
        online_devices=online_devices,
        offline_devices=offline_devices,
        online_percentage=f'{online_percentage:.2f}%',
        total_power_kw=_format_kw(total_power),
        average_power_kw=_format_kw(average_power),
        generated_at=generated_at,
    )

    logger.info(
        'Aggregated %d devices: %d online, %d offline, %s total',
        total_devices,
        online_devices,
        offline_devices,
        summary.total_power_kw,
    )

    return AggregateReport(summary=summary, devices=devices)
