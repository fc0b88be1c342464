# energygrid_aggregator/client.py
"""
HTTP transport for the EnergyGrid device query API.

DeviceQueryClient performs exactly one signed POST per call and classifies
the outcome. It never retries on its own: retry policy and request pacing
belong to RetryingRequestExecutor and RateGate, which wrap this client.

Classification:
---------------
- HTTP 200 with JSON body:        RequestSuccess(payload)
- HTTP 200 with unparseable body: RequestFailure(PARSE_ERROR, retryable=False)
- HTTP 429:                       RequestFailure(RATE_LIMITED, retryable=True)
- HTTP 5xx:                       RequestFailure(SERVER_ERROR, retryable=True)
- Other status codes:             RequestFailure(CLIENT_ERROR, retryable=False)
- Timeouts / connection errors:   RequestFailure(NETWORK_ERROR, retryable=True)

Retryability is decided from the status code alone. A 200 whose JSON body
describes an application-level error is still a success at this layer.
"""

import logging
from collections.abc import Sequence
from types import TracebackType
from typing import Any, Final, Self

import httpx

from energygrid_aggregator.config import MAX_BATCH_SIZE, ServiceConfig
from energygrid_aggregator.models import (
    FailureKind,
    RequestFailure,
    RequestOutcome,
    RequestSpec,
    RequestSuccess,
)
from energygrid_aggregator.signing import build_auth_headers

__all__: list[str] = ['DeviceQueryClient']

logger: logging.Logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_STATUS_OK: Final[int] = 200
HTTP_STATUS_RATE_LIMITED: Final[int] = 429
HTTP_STATUS_SERVER_ERROR_MIN: Final[int] = 500

# Request body field carrying the serial numbers
SERIAL_LIST_FIELD: Final[str] = 'sn_list'

# Truncation applied to response bodies quoted in logs and failure messages
BODY_EXCERPT_LENGTH: Final[int] = 200


class DeviceQueryClient:
    """
    Signed HTTP client for the real-time device query endpoint.

    Each call to send() builds fresh `timestamp` and `signature` headers,
    performs one POST and returns a classified RequestOutcome. Exceptions
    are only raised for caller errors (empty or oversized batches).

    Thread Safety:
        The underlying httpx.Client is thread-safe, but this class is meant
        to be driven by a single scheduler lane.

    Example:
        >>> with DeviceQueryClient(config.service) as client:
        ...     outcome = client.send(['SN-000', 'SN-001'])
        ...     if outcome.ok:
        ...         print(outcome.payload['data'])
    """

    def __init__(
        self,
        service_config: ServiceConfig,
        max_batch_size: int = MAX_BATCH_SIZE,
        pool_maxsize: int = 2,
    ) -> None:
        """
        Initialize the device query client.

        Args:
            service_config: Endpoint location, signing secret and timeouts.
            max_batch_size: Largest number of serial numbers accepted per
                request. Never above the API limit of 10.
            pool_maxsize: Maximum connections kept by the HTTP pool.

        Raises:
            ValueError: If max_batch_size is outside 1..10.
        """
        if not 1 <= max_batch_size <= MAX_BATCH_SIZE:
            raise ValueError(
                f'max_batch_size must be between 1 and {MAX_BATCH_SIZE}, '
                f'got: {max_batch_size}'
            )

        self._service_config: ServiceConfig = service_config
        self._max_batch_size: int = max_batch_size

        connect_timeout: float
        read_timeout: float
        connect_timeout, read_timeout = service_config.request_timeout

        self._http_client: httpx.Client = httpx.Client(
            timeout=httpx.Timeout(
                connect=connect_timeout,
                read=read_timeout,
                write=connect_timeout,
                pool=connect_timeout,
            ),
            limits=httpx.Limits(
                max_keepalive_connections=pool_maxsize,
                max_connections=pool_maxsize,
            ),
        )

        logger.info(
            'Initialized DeviceQueryClient: endpoint=%r, max_batch_size=%d',
            service_config.endpoint_url,
            max_batch_size,
        )

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the HTTP client and release pooled connections."""
        self._http_client.close()
        logger.debug('DeviceQueryClient closed')

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Request Execution
    # -------------------------------------------------------------------------

    def build_request_spec(
        self,
        serial_numbers: Sequence[str],
        timestamp_millis: int | None = None,
    ) -> RequestSpec:
        """
        Build a signed request for a batch of serial numbers.

        Args:
            serial_numbers: Serial numbers to query (1..max_batch_size).
            timestamp_millis: Signing timestamp; defaults to now.

        Returns:
            RequestSpec with URL, signed headers and JSON body.

        Raises:
            ValueError: If the batch is empty or exceeds max_batch_size.
        """
        if not serial_numbers:
            raise ValueError('Cannot query an empty batch of serial numbers')
        if len(serial_numbers) > self._max_batch_size:
            raise ValueError(
                f'Batch of {len(serial_numbers)} serial numbers exceeds '
                f'the limit of {self._max_batch_size}'
            )

        headers: dict[str, str] = {
            'Content-Type': 'application/json',
            **build_auth_headers(
                resource_path=self._service_config.endpoint_path,
                secret=self._service_config.signing_secret.get_secret_value(),
                timestamp_millis=timestamp_millis,
            ),
        }

        return RequestSpec(
            url=self._service_config.endpoint_url,
            headers=headers,
            body={SERIAL_LIST_FIELD: list(serial_numbers)},
            timeout=self._service_config.request_timeout,
        )

    def send(self, serial_numbers: Sequence[str]) -> RequestOutcome:
        """
        Query one batch of devices with a single network round trip.

        Args:
            serial_numbers: Serial numbers to query (1..max_batch_size).

        Returns:
            RequestSuccess with the decoded JSON body, or a classified
            RequestFailure.

        Raises:
            ValueError: If the batch is empty or exceeds max_batch_size.
        """
        request_spec: RequestSpec = self.build_request_spec(serial_numbers)

        logger.debug(
            'POST %s with %d serial numbers (%s..%s)',
            request_spec.url,
            len(serial_numbers),
            serial_numbers[0],
            serial_numbers[-1],
        )

        try:
            response: httpx.Response = self._send_http_request(request_spec)
        except httpx.TimeoutException as error:
            logger.warning('Request timeout: %s - %s', request_spec.url, error)
            return RequestFailure(
                kind=FailureKind.NETWORK_ERROR,
                message=f'Request timeout: {error}',
                retryable=True,
            )
        except httpx.RequestError as error:
            logger.warning('Connection error: %s - %s', request_spec.url, error)
            return RequestFailure(
                kind=FailureKind.NETWORK_ERROR,
                message=f'Connection error: {error}',
                retryable=True,
            )

        return self._classify_response(response)

    def _send_http_request(self, request_spec: RequestSpec) -> httpx.Response:
        timeout = httpx.Timeout(
            connect=request_spec.timeout[0],
            read=request_spec.timeout[1],
            write=request_spec.timeout[0],
            pool=request_spec.timeout[0],
        )

        return self._http_client.request(
            method=request_spec.method,
            url=request_spec.url,
            headers=request_spec.headers,
            json=request_spec.body,
            timeout=timeout,
        )

    def _classify_response(self, response: httpx.Response) -> RequestOutcome:
        """
        Turn an HTTP response into a RequestOutcome.

        Args:
            response: httpx Response object.

        Returns:
            RequestSuccess for 200 with JSON, otherwise a RequestFailure.
        """
        status_code: int = response.status_code

        if status_code == HTTP_STATUS_RATE_LIMITED:
            logger.warning('Rate limited (HTTP 429)')
            return RequestFailure(
                kind=FailureKind.RATE_LIMITED,
                message='Rate limited',
                retryable=True,
                status_code=status_code,
            )

        if status_code >= HTTP_STATUS_SERVER_ERROR_MIN:
            body_excerpt: str = response.text[:BODY_EXCERPT_LENGTH]
            logger.warning('Server error %d: %s', status_code, body_excerpt)
            return RequestFailure(
                kind=FailureKind.SERVER_ERROR,
                message=f'Server error: HTTP {status_code} {body_excerpt}'.rstrip(),
                retryable=True,
                status_code=status_code,
            )

        if status_code != HTTP_STATUS_OK:
            body_excerpt = response.text[:BODY_EXCERPT_LENGTH]
            logger.error(
                'Client error %d (not retryable): %s', status_code, body_excerpt
            )
            return RequestFailure(
                kind=FailureKind.CLIENT_ERROR,
                message=f'Client error: HTTP {status_code} {body_excerpt}'.rstrip(),
                retryable=False,
                status_code=status_code,
            )

        try:
            json_body: Any = response.json()
        except ValueError as parse_error:
            logger.error('Unparseable response body: %s', parse_error)
            return RequestFailure(
                kind=FailureKind.PARSE_ERROR,
                message=f'Failed to parse response: {parse_error}',
                retryable=False,
                status_code=status_code,
            )

        return RequestSuccess(payload=json_body)
