# energygrid_aggregator/__init__.py
"""
EnergyGrid Aggregator - rate-limited bulk telemetry collection.

Collects real-time readings for a fixed fleet of solar inverters from the
EnergyGrid device query API, which only accepts signed requests, at most 10
serial numbers per request and one request per second.

The collection core is a strictly single-lane pipeline:

    BatchScheduler -> RetryingRequestExecutor -> RateGate.admit() -> DeviceQueryClient.send()

- RateGate spaces every physical request, retries included, by the configured
  minimum interval and serves concurrent callers in FIFO order.
- RetryingRequestExecutor retries 429/5xx/network failures with linear
  backoff and returns the final outcome as a value.
- BatchScheduler processes batches in order and records successes and
  failures without ever aborting the run.

Quick Start:
    >>> from energygrid_aggregator import AggregatorPipeline
    >>>
    >>> pipeline = AggregatorPipeline.from_config_file('config/aggregator_config.yaml')
    >>> report = pipeline.run()
    >>> print(pipeline.render())

Command line:
    $ energygrid-aggregator -c config/aggregator_config.yaml
"""

from energygrid_aggregator.client import DeviceQueryClient
from energygrid_aggregator.config import AggregatorConfig, load_config
from energygrid_aggregator.devices import (
    AggregateReport,
    aggregate_results,
    create_batches,
    generate_serial_numbers,
)
from energygrid_aggregator.executor import RetryingRequestExecutor
from energygrid_aggregator.models import (
    BatchFailure,
    CollectionResult,
    FailureKind,
    RequestFailure,
    RequestOutcome,
    RequestSuccess,
    WorkItem,
)
from energygrid_aggregator.pipeline import AggregatorError, AggregatorPipeline
from energygrid_aggregator.rate_gate import RateGate
from energygrid_aggregator.scheduler import BatchScheduler
from energygrid_aggregator.signing import build_auth_headers, sign

__version__: str = '0.1.0'

__all__: list[str] = [
    'AggregateReport',
    'AggregatorConfig',
    'AggregatorError',
    'AggregatorPipeline',
    'BatchFailure',
    'BatchScheduler',
    'CollectionResult',
    'DeviceQueryClient',
    'FailureKind',
    'RateGate',
    'RequestFailure',
    'RequestOutcome',
    'RequestSuccess',
    'RetryingRequestExecutor',
    'WorkItem',
    '__version__',
    'aggregate_results',
    'build_auth_headers',
    'create_batches',
    'generate_serial_numbers',
    'load_config',
    'sign',
]
