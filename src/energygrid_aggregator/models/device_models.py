# energygrid_aggregator/models/device_models.py
"""
Device-side data models: work items sent to the API and power parsing.

WorkItem is the unit of scheduling. It is created once by batch slicing,
handed to the scheduler, and never mutated. Device records returned by the
API stay plain dictionaries (`sn`, `power`, `status`, `last_updated`, plus
whatever else the service sends).
"""

import math
import re
from enum import Enum
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

__all__: list[str] = ['DeviceStatus', 'WorkItem', 'parse_power']

# Leading numeric portion of a power string such as '2.45 kW'.
_LEADING_FLOAT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)'
)


class DeviceStatus(str, Enum):
    """Status values reported by the device query API."""

    ONLINE = 'Online'
    OFFLINE = 'Offline'


class WorkItem(BaseModel):
    """
    One batch of device serial numbers submitted as a single request.

    Attributes:
        index: 0-based position of this batch in the overall sequence.
        serial_numbers: Serial numbers in this batch, in population order.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    index: int = Field(ge=0)
    serial_numbers: tuple[str, ...] = Field(min_length=1)

    @property
    def number(self) -> int:
        """1-based batch number for display."""
        return self.index + 1

    @property
    def size(self) -> int:
        """Number of serial numbers in this batch."""
        return len(self.serial_numbers)

    @property
    def first_serial(self) -> str:
        return self.serial_numbers[0]

    @property
    def last_serial(self) -> str:
        return self.serial_numbers[-1]

    def describe(self) -> str:
        """Short human-readable label, e.g. 'batch 3 (SN-020 to SN-029)'."""
        return f'batch {self.number} ({self.first_serial} to {self.last_serial})'


def parse_power(raw_power: object) -> float:
    """
    Extract the numeric value of a power reading.

    Strings are read up to the first non-numeric character, so '2.45 kW'
    yields 2.45. Missing, unparseable or non-scalar values count as 0.0.

    Args:
        raw_power: Power value as returned by the API.

    Returns:
        Power as a float.
    """
    if raw_power is None or isinstance(raw_power, bool):
        return 0.0
    if isinstance(raw_power, (int, float)):
        numeric_power: float = float(raw_power)
        return 0.0 if math.isnan(numeric_power) else numeric_power
    if not isinstance(raw_power, str):
        return 0.0

    match: re.Match[str] | None = _LEADING_FLOAT_PATTERN.match(raw_power)
    if match is None:
        return 0.0
    return float(match.group(1))
