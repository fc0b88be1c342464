# energygrid_aggregator/models/request_models.py
"""
Request specification model for the device query endpoint.

This module defines the contract between request building (URL, signed
headers, JSON body) and the transport that executes it. The transport never
needs to know how signatures are computed.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__: list[str] = ['RequestSpec']


class RequestSpec(BaseModel):
    """
    Complete specification for one HTTP request.

    Attributes:
        url: Complete URL ready for the HTTP request.
        headers: All headers including `timestamp` and `signature`.
        body: JSON body for the POST request.
        timeout: Tuple of (connect_timeout, read_timeout) in seconds.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    url: str
    method: str = 'POST'
    headers: dict[str, str] = Field(default_factory=dict)
    body: dict[str, Any] | None = None
    timeout: tuple[float, float] = Field(
        default=(5.0, 30.0),
        description='(connect_timeout, read_timeout) in seconds',
    )
