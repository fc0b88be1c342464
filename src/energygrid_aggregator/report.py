# energygrid_aggregator/report.py
"""
Console rendering of the final aggregate report.

The report always lists failed batches with their reasons, so a partially
failed run is visible at a glance without digging through the logs.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Final

from energygrid_aggregator.devices import AggregateReport
from energygrid_aggregator.models import BatchFailure

__all__: list[str] = ['render_report']

RULE: Final[str] = '=' * 59
SAMPLE_RULE: Final[str] = '-' * 35


def _sample_line(device: Mapping[str, Any]) -> str:
    return (
        f'   {device.get("sn", "?")}: {device.get("power", "?")} | '
        f'{device.get("status", "?")} | {device.get("last_updated", "?")}'
    )


def render_report(
    report: AggregateReport,
    failures: Sequence[BatchFailure],
    execution_seconds: float,
    sample_size: int = 5,
) -> str:
    """
    Render the final report as plain text.

    Args:
        report: Aggregated summary and device records.
        failures: Failed batches in submission order.
        execution_seconds: Wall-clock duration of the run.
        sample_size: Number of device records shown at the end; 0 hides
            the sample section.

    Returns:
        Multi-line report text without a trailing newline.
    """
    summary = report.summary
    lines: list[str] = [
        RULE,
        'FINAL REPORT'.center(len(RULE)).rstrip(),
        RULE,
        f'   Total Devices Queried:    {summary.total_devices}',
        f'   Online Devices:           {summary.online_devices} '
        f'({summary.online_percentage})',
        f'   Offline Devices:          {summary.offline_devices}',
        f'   Total Power Output:       {summary.total_power_kw}',
        f'   Average Power per Device: {summary.average_power_kw}',
        f'   Execution Time:           {execution_seconds:.2f} seconds',
        f'   Failed Batches:           {len(failures)}',
        f'   Report Generated At:      {summary.generated_at.isoformat()}',
        RULE,
    ]

    if failures:
        lines.append('')
        lines.append('Failed Batches Details:')
        lines.extend(
            f'   - Batch {failure.item.number}: {failure.error}' for failure in failures
        )

    if sample_size > 0:
        sample: list[dict[str, Any]] = report.devices[:sample_size]
        lines.append('')
        lines.append(f'Sample Device Data (first {sample_size}):')
        lines.append(SAMPLE_RULE)
        lines.extend(_sample_line(device) for device in sample)
        if len(report.devices) > sample_size:
            lines.append('   ...')

    return '\n'.join(lines)
