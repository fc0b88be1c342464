# energygrid_aggregator/models/__init__.py

from energygrid_aggregator.models.device_models import (
    DeviceStatus,
    WorkItem,
    parse_power,
)
from energygrid_aggregator.models.outcome_models import (
    BatchFailure,
    CollectionResult,
    FailureKind,
    RequestFailure,
    RequestOutcome,
    RequestSuccess,
)
from energygrid_aggregator.models.request_models import RequestSpec

__all__: list[str] = [
    'BatchFailure',
    'CollectionResult',
    'DeviceStatus',
    'FailureKind',
    'RequestFailure',
    'RequestOutcome',
    'RequestSpec',
    'RequestSuccess',
    'WorkItem',
    'parse_power',
]
