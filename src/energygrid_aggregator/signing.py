# energygrid_aggregator/signing.py
"""
Request signing for the EnergyGrid device query API.

The service authenticates every request with two headers:

    timestamp:  milliseconds since the Unix epoch, as a decimal string
    signature:  md5(resource_path + secret + timestamp), lowercase hex

The digest algorithm and the concatenation order are part of the wire
contract. Only the resource path is signed, never the host or query string.
"""

import hashlib
import time

__all__: list[str] = [
    'SIGNATURE_HEADER',
    'TIMESTAMP_HEADER',
    'build_auth_headers',
    'current_timestamp_millis',
    'sign',
]

TIMESTAMP_HEADER: str = 'timestamp'
SIGNATURE_HEADER: str = 'signature'


def sign(resource_path: str, timestamp_millis: int, secret: str) -> str:
    """
    Compute the request signature.

    Args:
        resource_path: Endpoint path, e.g. '/device/real/query'.
        timestamp_millis: Request time in epoch milliseconds.
        secret: Shared signing secret.

    Returns:
        Lowercase hex MD5 digest of `resource_path + secret + timestamp`.
    """
    payload: str = f'{resource_path}{secret}{timestamp_millis}'
    return hashlib.md5(payload.encode('utf-8')).hexdigest()  # noqa: S324


def current_timestamp_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def build_auth_headers(
    resource_path: str,
    secret: str,
    timestamp_millis: int | None = None,
) -> dict[str, str]:
    """
    Build the `timestamp` and `signature` headers for one request.

    Args:
        resource_path: Endpoint path being requested.
        secret: Shared signing secret.
        timestamp_millis: Request time; defaults to now.

    Returns:
        Header mapping ready to merge into the request headers.
    """
    if timestamp_millis is None:
        timestamp_millis = current_timestamp_millis()

    return {
        TIMESTAMP_HEADER: str(timestamp_millis),
        SIGNATURE_HEADER: sign(resource_path, timestamp_millis, secret),
    }
