"""
Tests for energygrid_aggregator.devices and device models.

Covers serial number generation, batch slicing, power parsing and the
aggregate report.
"""

from datetime import UTC, datetime
from typing import Any

import pandas as pd
import pytest
from conftest import device_record
from pydantic import ValidationError

from energygrid_aggregator.devices import (
    AggregateReport,
    aggregate_results,
    create_batches,
    devices_to_dataframe,
    generate_serial_numbers,
)
from energygrid_aggregator.models import DeviceStatus, WorkItem, parse_power

GENERATED_AT = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class TestGenerateSerialNumbers:
    """Test generate_serial_numbers()."""

    def test_default_population(self) -> None:
        serials: list[str] = generate_serial_numbers(500)

        assert len(serials) == 500  # noqa: PLR2004
        assert serials[0] == 'SN-000'
        assert serials[42] == 'SN-042'
        assert serials[-1] == 'SN-499'
        assert len(set(serials)) == len(serials)

    def test_width_is_minimum_not_maximum(self) -> None:
        serials: list[str] = generate_serial_numbers(1001)

        assert serials[999] == 'SN-999'
        assert serials[1000] == 'SN-1000'

    def test_custom_prefix_and_width(self) -> None:
        assert generate_serial_numbers(2, prefix='DEV', width=5) == [
            'DEV00000',
            'DEV00001',
        ]

    def test_zero_count_is_empty(self) -> None:
        assert generate_serial_numbers(0) == []

    def test_rejects_negative_count(self) -> None:
        with pytest.raises(ValueError, match='count'):
            generate_serial_numbers(-1)

    def test_rejects_zero_width(self) -> None:
        with pytest.raises(ValueError, match='width'):
            generate_serial_numbers(5, width=0)


class TestCreateBatches:
    """Test create_batches()."""

    def test_last_batch_holds_remainder(self) -> None:
        batches: list[WorkItem] = create_batches(generate_serial_numbers(25))

        assert [batch.size for batch in batches] == [10, 10, 5]
        assert batches[2].serial_numbers == (
            'SN-020',
            'SN-021',
            'SN-022',
            'SN-023',
            'SN-024',
        )
        assert [batch.index for batch in batches] == [0, 1, 2]

    def test_full_population_makes_fifty_batches(self) -> None:
        batches: list[WorkItem] = create_batches(generate_serial_numbers(500))

        assert len(batches) == 50  # noqa: PLR2004
        assert all(batch.size == 10 for batch in batches)  # noqa: PLR2004

    def test_concatenation_restores_population(self) -> None:
        serials: list[str] = generate_serial_numbers(37)
        batches: list[WorkItem] = create_batches(serials, batch_size=4)

        flattened: list[str] = [
            serial for batch in batches for serial in batch.serial_numbers
        ]
        assert flattened == serials

    def test_empty_population_yields_no_batches(self) -> None:
        assert create_batches([]) == []

    @pytest.mark.parametrize('batch_size', [0, 11, -3])
    def test_rejects_batch_size_outside_limit(self, batch_size: int) -> None:
        with pytest.raises(ValueError, match='batch_size'):
            create_batches(generate_serial_numbers(5), batch_size=batch_size)


class TestWorkItem:
    """Test WorkItem model."""

    def test_describe_and_number(self) -> None:
        item = WorkItem(index=2, serial_numbers=('SN-020', 'SN-021', 'SN-029'))

        assert item.number == 3  # noqa: PLR2004
        assert item.describe() == 'batch 3 (SN-020 to SN-029)'

    def test_is_immutable(self) -> None:
        item = WorkItem(index=0, serial_numbers=('SN-000',))

        with pytest.raises(ValidationError):
            item.index = 5  # pyright: ignore[reportAttributeAccessIssue]

    def test_rejects_empty_batch(self) -> None:
        with pytest.raises(ValidationError):
            WorkItem(index=0, serial_numbers=())


class TestParsePower:
    """Test parse_power() leading-number semantics."""

    @pytest.mark.parametrize(
        ('raw_power', 'expected'),
        [
            ('2.45 kW', 2.45),
            ('3 kW', 3.0),
            ('  0.5kW', 0.5),
            ('-1.25 kW', -1.25),
            ('.75 kW', 0.75),
            ('1e2 W', 100.0),
            (4.2, 4.2),
            (7, 7.0),
        ],
    )
    def test_parses_leading_number(self, raw_power: Any, expected: float) -> None:
        assert parse_power(raw_power) == pytest.approx(expected)

    @pytest.mark.parametrize(
        'raw_power', ['kW', '', 'N/A', None, True, float('nan'), {'value': 1}, [1]]
    )
    def test_unparseable_counts_as_zero(self, raw_power: Any) -> None:
        assert parse_power(raw_power) == 0.0


class TestDeviceStatus:
    """Test the DeviceStatus enumeration."""

    def test_lookup_by_wire_value(self) -> None:
        assert DeviceStatus('Online') is DeviceStatus.ONLINE
        assert DeviceStatus('Offline') is DeviceStatus.OFFLINE

    def test_compares_equal_to_wire_string(self) -> None:
        assert DeviceStatus.ONLINE == 'Online'
        assert DeviceStatus.OFFLINE.value == 'Offline'

    def test_unknown_status_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            DeviceStatus('Maintenance')


class TestAggregateResults:
    """Test aggregate_results()."""

    def test_summary_over_two_batches(self) -> None:
        """15 devices, 9 online and 6 offline, 2.5 kW each."""
        first_batch: list[dict[str, Any]] = [
            device_record(f'SN-{index:03d}', status='Online') for index in range(9)
        ] + [device_record('SN-009', status='Offline')]
        second_batch: list[dict[str, Any]] = [
            device_record(f'SN-{index:03d}', status='Offline') for index in range(10, 15)
        ]

        report: AggregateReport = aggregate_results(
            [first_batch, second_batch], generated_at=GENERATED_AT
        )

        summary = report.summary
        assert summary.total_devices == 15  # noqa: PLR2004
        assert summary.online_devices == 9  # noqa: PLR2004
        assert summary.offline_devices == 6  # noqa: PLR2004
        assert summary.online_percentage == '60.00%'
        assert summary.total_power_kw == '37.50 kW'
        assert summary.average_power_kw == '2.50 kW'
        assert [device['sn'] for device in report.devices] == [
            f'SN-{index:03d}' for index in range(15)
        ]

    def test_unknown_status_counts_toward_total_only(self) -> None:
        report: AggregateReport = aggregate_results(
            [
                [
                    device_record('SN-000', status='Online'),
                    device_record('SN-001', status='Maintenance'),
                ]
            ],
            generated_at=GENERATED_AT,
        )

        assert report.summary.total_devices == 2  # noqa: PLR2004
        assert report.summary.online_devices == 1
        assert report.summary.offline_devices == 0
        assert report.summary.online_percentage == '50.00%'

    def test_empty_results_report_zeros(self) -> None:
        report: AggregateReport = aggregate_results([], generated_at=GENERATED_AT)

        assert report.summary.total_devices == 0
        assert report.summary.online_percentage == '0.00%'
        assert report.summary.total_power_kw == '0.00 kW'
        assert report.summary.average_power_kw == '0.00 kW'
        assert report.devices == []

    def test_unparseable_power_counts_as_zero(self) -> None:
        record: dict[str, Any] = device_record('SN-000')
        record['power'] = 'offline'

        report: AggregateReport = aggregate_results(
            [[record, device_record('SN-001', power=3.0)]],
            generated_at=GENERATED_AT,
        )

        assert report.summary.total_power_kw == '3.00 kW'
        assert report.summary.average_power_kw == '1.50 kW'

    def test_non_object_records_are_ignored(self) -> None:
        report: AggregateReport = aggregate_results(
            [[None, 'SN-010', device_record('SN-000')], [42]],  # type: ignore[list-item]
            generated_at=GENERATED_AT,
        )

        assert report.summary.total_devices == 1
        assert report.summary.total_power_kw == '2.50 kW'
        assert [device['sn'] for device in report.devices] == ['SN-000']

    def test_nested_power_value_counts_as_zero(self) -> None:
        record: dict[str, Any] = device_record('SN-000')
        record['power'] = {'value': 2.5, 'unit': 'kW'}

        report: AggregateReport = aggregate_results(
            [[record, device_record('SN-001', power=3.0)]],
            generated_at=GENERATED_AT,
        )

        assert report.summary.total_devices == 2  # noqa: PLR2004
        assert report.summary.total_power_kw == '3.00 kW'

    def test_to_dict_uses_camel_case_keys(self) -> None:
        report: AggregateReport = aggregate_results(
            [[device_record('SN-000')]], generated_at=GENERATED_AT
        )

        document: dict[str, Any] = report.to_dict()

        assert set(document['summary']) == {
            'totalDevices',
            'onlineDevices',
            'offlineDevices',
            'onlinePercentage',
            'totalPowerKW',
            'averagePowerKW',
            'generatedAt',
        }
        assert document['summary']['generatedAt'].startswith('2025-06-01T12:00:00')
        assert document['devices'][0]['sn'] == 'SN-000'

    def test_defaults_generated_at_to_now(self) -> None:
        before: datetime = datetime.now(UTC)
        report: AggregateReport = aggregate_results([])

        assert report.summary.generated_at >= before


class TestDevicesToDataframe:
    """Test devices_to_dataframe()."""

    def test_adds_numeric_power_column(self) -> None:
        dataframe: pd.DataFrame = devices_to_dataframe(
            [device_record('SN-000', power=1.5), device_record('SN-001', power=2.0)]
        )

        assert dataframe['power_kw'].tolist() == [1.5, 2.0]
        assert dataframe['power_kw'].dtype == 'float64'

    def test_fills_missing_columns(self) -> None:
        dataframe: pd.DataFrame = devices_to_dataframe([{'sn': 'SN-000'}])

        assert {'sn', 'power', 'status', 'last_updated', 'power_kw'} <= set(
            dataframe.columns
        )
        assert dataframe['power_kw'].tolist() == [0.0]
