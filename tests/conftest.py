"""
Shared pytest fixtures for energygrid_aggregator tests.

Time is fully simulated: FakeClock provides both the monotonic clock and the
sleep function injected into RateGate and RetryingRequestExecutor, so no test
waits for real and every delay can be asserted exactly.
"""

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from energygrid_aggregator.config import (
    AggregatorConfig,
    DeviceConfig,
    LoggingConfig,
    OutputConfig,
    SchedulingConfig,
    ServiceConfig,
)
from energygrid_aggregator.models import (
    FailureKind,
    RequestFailure,
    RequestOutcome,
    RequestSuccess,
)

# =============================================================================
# Simulated Time
# =============================================================================


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly and records it."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now: float = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a fresh simulated clock starting at t=1000s."""
    return FakeClock()


# =============================================================================
# Outcome Helpers
# =============================================================================


def device_record(serial: str, power: float = 2.5, status: str = 'Online') -> dict[str, Any]:
    """Build one device record as the API returns it."""
    return {
        'sn': serial,
        'power': f'{power} kW',
        'status': status,
        'last_updated': '2025-06-01T12:00:00.000Z',
    }


def success_for(serial_numbers: Sequence[str]) -> RequestSuccess:
    """Successful response echoing one record per requested serial number."""
    return RequestSuccess(
        payload={'data': [device_record(serial) for serial in serial_numbers]}
    )


def server_error(status_code: int = 500) -> RequestFailure:
    return RequestFailure(
        kind=FailureKind.SERVER_ERROR,
        message=f'Server error: HTTP {status_code}',
        retryable=True,
        status_code=status_code,
    )


def rate_limited() -> RequestFailure:
    return RequestFailure(
        kind=FailureKind.RATE_LIMITED,
        message='Rate limited',
        retryable=True,
        status_code=429,
    )


def client_error(status_code: int = 400) -> RequestFailure:
    return RequestFailure(
        kind=FailureKind.CLIENT_ERROR,
        message=f'Client error: HTTP {status_code}',
        retryable=False,
        status_code=status_code,
    )


def network_error() -> RequestFailure:
    return RequestFailure(
        kind=FailureKind.NETWORK_ERROR,
        message='Connection error: connection refused',
        retryable=True,
    )


# Kinds accepted in ScriptedTransport scripts: an outcome, or None for success
ScriptStep = RequestOutcome | None


class ScriptedTransport:
    """
    Transport double returning scripted outcomes per batch.

    `script` maps the first serial number of a batch to the outcomes of its
    successive attempts; None (or a missing entry) means success. Every call
    is recorded with the simulated time at which it happened.
    """

    def __init__(
        self,
        clock: Callable[[], float],
        script: dict[str, list[ScriptStep]] | None = None,
    ) -> None:
        self._clock: Callable[[], float] = clock
        self._script: dict[str, list[ScriptStep]] = {
            first_serial: list(steps) for first_serial, steps in (script or {}).items()
        }
        self.calls: list[tuple[float, tuple[str, ...]]] = []

    def send(self, serial_numbers: Sequence[str]) -> RequestOutcome:
        self.calls.append((self._clock(), tuple(serial_numbers)))

        steps: list[ScriptStep] = self._script.get(serial_numbers[0], [])
        step: ScriptStep = steps.pop(0) if steps else None
        return success_for(serial_numbers) if step is None else step

    @property
    def call_times(self) -> list[float]:
        return [call_time for call_time, _ in self.calls]

    @property
    def called_batches(self) -> list[str]:
        """First serial number of each call, in call order."""
        return [serials[0] for _, serials in self.calls]


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def service_config() -> ServiceConfig:
    """Provide ServiceConfig pointing at a local test server."""
    return ServiceConfig(
        base_url='http://localhost:3000/',
        signing_secret='interview_token_123',  # pyright: ignore[reportArgumentType]
        request_timeout=(2.0, 5.0),
    )


@pytest.fixture
def scheduling_config() -> SchedulingConfig:
    """Provide SchedulingConfig with the API's published limits."""
    return SchedulingConfig(
        batch_size=10,
        min_request_interval_seconds=1.1,
        max_retries=3,
        retry_base_delay_seconds=2.0,
    )


@pytest.fixture
def aggregator_config(
    service_config: ServiceConfig,
    scheduling_config: SchedulingConfig,
) -> AggregatorConfig:
    """Provide a complete AggregatorConfig for a 25-device population."""
    return AggregatorConfig(
        service=service_config,
        scheduling=scheduling_config,
        devices=DeviceConfig(count=25),
        output=OutputConfig(),
        logging=LoggingConfig(),
    )


@pytest.fixture
def config_data() -> dict[str, Any]:
    """Raw configuration mapping as it would appear in YAML."""
    return {
        'service': {
            'base_url': 'http://localhost:3000',
            'endpoint_path': '/device/real/query',
            'signing_secret': 'interview_token_123',
            'request_timeout': [2, 5],
        },
        'scheduling': {
            'batch_size': 10,
            'min_request_interval_seconds': 1.1,
            'max_retries': 3,
            'retry_base_delay_seconds': 2.0,
        },
        'devices': {'count': 25},
    }


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test files."""
    return tmp_path
