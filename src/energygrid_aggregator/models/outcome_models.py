# energygrid_aggregator/models/outcome_models.py
"""
Tagged result types for request attempts and collection runs.

Per-batch errors are values, not exceptions: the transport classifies every
HTTP exchange into a RequestSuccess or a RequestFailure, the executor decides
whether to retry based on the failure's `retryable` flag, and the scheduler
records whatever comes out. Nothing in this flow raises past the scheduler.

Failure taxonomy:
    PARSE_ERROR    - 200 with an unparseable body (not retryable)
    RATE_LIMITED   - HTTP 429 (retryable)
    SERVER_ERROR   - HTTP 5xx (retryable)
    CLIENT_ERROR   - other 4xx / unexpected status (not retryable)
    NETWORK_ERROR  - timeout, refused or reset connection (retryable)
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from energygrid_aggregator.models.device_models import WorkItem

__all__: list[str] = [
    'BatchFailure',
    'CollectionResult',
    'FailureKind',
    'RequestFailure',
    'RequestOutcome',
    'RequestSuccess',
]


class FailureKind(str, Enum):
    """Classification of a failed request attempt."""

    PARSE_ERROR = 'ParseError'
    RATE_LIMITED = 'RateLimited'
    SERVER_ERROR = 'ServerError'
    CLIENT_ERROR = 'ClientError'
    NETWORK_ERROR = 'NetworkError'


class RequestSuccess(BaseModel):
    """
    Successful exchange: HTTP 200 with a parseable JSON body.

    Attributes:
        payload: The decoded JSON body, unmodified.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    ok: Literal[True] = True
    payload: Any

    @property
    def retryable(self) -> bool:
        return False


class RequestFailure(BaseModel):
    """
    Failed exchange with its classification.

    Attributes:
        kind: Failure classification.
        message: Human-readable reason, suitable for the final report.
        retryable: Whether the executor may re-attempt the request.
        status_code: HTTP status if a response was received.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    ok: Literal[False] = False
    kind: FailureKind
    message: str
    retryable: bool
    status_code: int | None = None

    def __str__(self) -> str:
        return f'{self.kind.value}: {self.message}'


RequestOutcome = RequestSuccess | RequestFailure


class BatchFailure(BaseModel):
    """
    A batch that could not be collected, with the final error.

    Attributes:
        item: The batch that failed.
        error: The last failure observed for it.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    item: WorkItem
    error: RequestFailure

    def to_dict(self) -> dict[str, Any]:
        """Flat representation for JSON export."""
        return {
            'batch': self.item.number,
            'devices': list(self.item.serial_numbers),
            'kind': self.error.kind.value,
            'status_code': self.error.status_code,
            'error': self.error.message,
        }


class CollectionResult(BaseModel):
    """
    Ordered outcome logs of one scheduler run.

    Both lists preserve submission order. Every submitted batch appears
    exactly once across `successes` and `failures`, except successful
    responses without a `data` array, which are only counted in
    `batches_without_data`.

    Attributes:
        successes: `data` arrays of successful responses.
        failures: Failed batches with their last error.
        batches_total: Number of batches submitted.
        batches_without_data: Successful responses lacking a `data` array.
        records_skipped: Entries of `data` arrays that were not objects.
    """

    model_config = ConfigDict(extra='forbid')

    successes: list[list[dict[str, Any]]] = Field(default_factory=list)
    failures: list[BatchFailure] = Field(default_factory=list)
    batches_total: int = 0
    batches_without_data: int = 0
    records_skipped: int = 0

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def failure_count(self) -> int:
        return len(self.failures)
