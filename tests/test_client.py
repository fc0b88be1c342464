"""
Tests for energygrid_aggregator.client module.

Tests DeviceQueryClient request construction and outcome classification.
"""
# pyright: reportPrivateUsage=false

from collections.abc import Mapping
from typing import Any
from unittest.mock import Mock, patch

import httpx
import pytest

from energygrid_aggregator.client import DeviceQueryClient
from energygrid_aggregator.config import ServiceConfig
from energygrid_aggregator.models import (
    FailureKind,
    RequestFailure,
    RequestOutcome,
    RequestSuccess,
    RequestSpec,
)
from energygrid_aggregator.signing import sign

SERIALS: list[str] = ['SN-000', 'SN-001', 'SN-002']


def make_response(
    status_code: int,
    json_body: Any = None,
    text: str = '',
    invalid_json: bool = False,
) -> Mock:
    """Build a mocked httpx.Response."""
    response = Mock(spec=httpx.Response)
    response.status_code = status_code
    response.text = text
    if invalid_json:
        response.json.side_effect = ValueError('Expecting value: line 1 column 1')
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def client(service_config: ServiceConfig) -> DeviceQueryClient:
    """Provide a client that is closed after the test."""
    with DeviceQueryClient(service_config) as query_client:
        yield query_client


class TestDeviceQueryClientInitialization:
    """Test DeviceQueryClient construction."""

    def test_initialization_succeeds(self, service_config: ServiceConfig) -> None:
        query_client = DeviceQueryClient(service_config)

        assert query_client._service_config == service_config
        query_client.close()

    @pytest.mark.parametrize('max_batch_size', [0, 11])
    def test_rejects_batch_limit_outside_api_range(
        self, service_config: ServiceConfig, max_batch_size: int
    ) -> None:
        with pytest.raises(ValueError, match='max_batch_size'):
            DeviceQueryClient(service_config, max_batch_size=max_batch_size)

    def test_context_manager_closes_http_client(
        self, service_config: ServiceConfig
    ) -> None:
        with DeviceQueryClient(service_config) as query_client:
            http_client: httpx.Client = query_client._http_client

        assert http_client.is_closed


class TestBuildRequestSpec:
    """Test DeviceQueryClient.build_request_spec()."""

    def test_builds_signed_post_to_endpoint(self, client: DeviceQueryClient) -> None:
        request_spec: RequestSpec = client.build_request_spec(
            SERIALS, timestamp_millis=1_700_000_000_000
        )

        assert request_spec.method == 'POST'
        assert request_spec.url == 'http://localhost:3000/device/real/query'
        assert request_spec.body == {'sn_list': SERIALS}
        assert request_spec.headers['Content-Type'] == 'application/json'
        assert request_spec.headers['timestamp'] == '1700000000000'
        assert request_spec.headers['signature'] == sign(
            '/device/real/query', 1_700_000_000_000, 'interview_token_123'
        )

    def test_rejects_empty_batch(self, client: DeviceQueryClient) -> None:
        with pytest.raises(ValueError, match='empty'):
            client.build_request_spec([])

    def test_rejects_oversized_batch(self, client: DeviceQueryClient) -> None:
        serials: list[str] = [f'SN-{index:03d}' for index in range(11)]

        with pytest.raises(ValueError, match='exceeds'):
            client.build_request_spec(serials)


class TestDeviceQueryClientSend:
    """Test DeviceQueryClient.send() classification."""

    def test_success_returns_decoded_payload(self, client: DeviceQueryClient) -> None:
        body: dict[str, Any] = {
            'data': [
                {
                    'sn': 'SN-000',
                    'power': '2.45 kW',
                    'status': 'Online',
                    'last_updated': '2025-06-01T12:00:00Z',
                }
            ]
        }

        with patch.object(
            client._http_client, 'request', return_value=make_response(200, body)
        ) as mock_request:
            outcome: RequestOutcome = client.send(SERIALS)

        assert isinstance(outcome, RequestSuccess)
        assert outcome.payload == body
        assert mock_request.call_count == 1

    def test_sends_signed_headers_and_serial_list(
        self, client: DeviceQueryClient
    ) -> None:
        with patch.object(
            client._http_client, 'request', return_value=make_response(200, {})
        ) as mock_request:
            client.send(SERIALS)

        call_kwargs: Mapping[str, Any] = mock_request.call_args.kwargs
        headers: dict[str, str] = call_kwargs['headers']

        assert call_kwargs['method'] == 'POST'
        assert call_kwargs['json'] == {'sn_list': SERIALS}
        assert headers['signature'] == sign(
            '/device/real/query', int(headers['timestamp']), 'interview_token_123'
        )

    def test_application_error_body_is_still_success(
        self, client: DeviceQueryClient
    ) -> None:
        """A parseable 200 is a success even if the body reports an error."""
        body: dict[str, str] = {'error': 'Invalid signature'}

        with patch.object(
            client._http_client, 'request', return_value=make_response(200, body)
        ):
            outcome: RequestOutcome = client.send(SERIALS)

        assert isinstance(outcome, RequestSuccess)

    def test_unparseable_body_is_parse_error(self, client: DeviceQueryClient) -> None:
        with patch.object(
            client._http_client,
            'request',
            return_value=make_response(200, text='<html>', invalid_json=True),
        ):
            outcome: RequestOutcome = client.send(SERIALS)

        assert isinstance(outcome, RequestFailure)
        assert outcome.kind is FailureKind.PARSE_ERROR
        assert outcome.retryable is False

    def test_429_is_retryable_rate_limit(self, client: DeviceQueryClient) -> None:
        with patch.object(
            client._http_client, 'request', return_value=make_response(429)
        ):
            outcome: RequestOutcome = client.send(SERIALS)

        assert isinstance(outcome, RequestFailure)
        assert outcome.kind is FailureKind.RATE_LIMITED
        assert outcome.retryable is True
        assert outcome.status_code == 429  # noqa: PLR2004

    @pytest.mark.parametrize('status_code', [500, 502, 503, 504])
    def test_5xx_is_retryable_server_error(
        self, client: DeviceQueryClient, status_code: int
    ) -> None:
        with patch.object(
            client._http_client,
            'request',
            return_value=make_response(status_code, text='Internal Server Error'),
        ):
            outcome: RequestOutcome = client.send(SERIALS)

        assert isinstance(outcome, RequestFailure)
        assert outcome.kind is FailureKind.SERVER_ERROR
        assert outcome.retryable is True
        assert outcome.status_code == status_code

    @pytest.mark.parametrize('status_code', [400, 401, 403, 404])
    def test_other_4xx_is_non_retryable_client_error(
        self, client: DeviceQueryClient, status_code: int
    ) -> None:
        with patch.object(
            client._http_client,
            'request',
            return_value=make_response(status_code, text='Bad Request'),
        ):
            outcome: RequestOutcome = client.send(SERIALS)

        assert isinstance(outcome, RequestFailure)
        assert outcome.kind is FailureKind.CLIENT_ERROR
        assert outcome.retryable is False
        assert 'Bad Request' in outcome.message

    @pytest.mark.parametrize(
        'transport_error',
        [
            httpx.ConnectTimeout('timed out'),
            httpx.ReadTimeout('timed out'),
            httpx.ConnectError('connection refused'),
            httpx.RemoteProtocolError('connection reset'),
        ],
    )
    def test_transport_errors_are_retryable_network_errors(
        self, client: DeviceQueryClient, transport_error: httpx.RequestError
    ) -> None:
        with patch.object(
            client._http_client, 'request', side_effect=transport_error
        ) as mock_request:
            outcome: RequestOutcome = client.send(SERIALS)

        assert isinstance(outcome, RequestFailure)
        assert outcome.kind is FailureKind.NETWORK_ERROR
        assert outcome.retryable is True
        assert outcome.status_code is None
        # No internal retry: one round trip per call
        assert mock_request.call_count == 1

    def test_failure_makes_single_request(self, client: DeviceQueryClient) -> None:
        with patch.object(
            client._http_client, 'request', return_value=make_response(503)
        ) as mock_request:
            client.send(SERIALS)

        assert mock_request.call_count == 1

    def test_oversized_batch_sends_nothing(self, client: DeviceQueryClient) -> None:
        serials: list[str] = [f'SN-{index:03d}' for index in range(11)]

        with (
            patch.object(client._http_client, 'request') as mock_request,
            pytest.raises(ValueError),
        ):
            client.send(serials)

        mock_request.assert_not_called()
