# energygrid_aggregator/config/config_models.py
"""
Configuration management for the EnergyGrid telemetry aggregator.

This module provides Pydantic models for the YAML configuration file that
controls how the aggregator talks to the EnergyGrid device query API: where
the service lives, how requests are signed, how fast they may be sent, how
transient failures are retried, and where the final report goes.

Design Decisions:
-----------------
- All models use `extra='forbid'` to catch typos and invalid fields in YAML
  configuration files early, preventing silent misconfiguration.

- No logging occurs within this module because the logging configuration itself
  is defined here. Logging must be configured by the caller after loading config.

- Every tunable constant of the collection run (batch size, request spacing,
  retry budget, backoff base, signing secret, device population) lives here.
  Components receive the relevant section at construction time and never read
  module-level state.

- SecretStr is used for the signing secret to prevent accidental exposure in
  logs, repr(), or error messages. The actual value must be accessed via
  `.get_secret_value()`.

Usage:
------
    import yaml
    from energygrid_aggregator.config.config_models import AggregatorConfig

    with open('config.yaml', 'r') as config_file:
        raw_config = yaml.safe_load(config_file)

    config = AggregatorConfig.model_validate(raw_config)
"""

from pathlib import Path
from typing import Final, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

# =============================================================================
# Public API
# =============================================================================

__all__: list[str] = [
    'MAX_BATCH_SIZE',
    'AggregatorConfig',
    'CompressionType',
    'DeviceConfig',
    'LogLevelName',
    'LoggingConfig',
    'OutputConfig',
    'SchedulingConfig',
    'ServiceConfig',
]

# =============================================================================
# Type Aliases and Constants
# =============================================================================

# Valid logging level names recognized by Python's logging module.
LogLevelName = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

# Numeric equivalents of log level names for validation purposes.
LOG_LEVEL_VALUES: frozenset[int] = frozenset({10, 20, 30, 40, 50})

# Mapping from level name to numeric value, avoiding import of logging module
# in the model layer.
LOG_LEVEL_NAME_TO_INT: dict[LogLevelName, int] = {
    'DEBUG': 10,
    'INFO': 20,
    'WARNING': 30,
    'ERROR': 40,
    'CRITICAL': 50,
}

# Compression codecs accepted by pandas.to_parquet() with pyarrow.
CompressionType = Literal['snappy', 'gzip', 'brotli', 'lz4', 'zstd'] | None

# Hard limit imposed by the device query API on serial numbers per request.
MAX_BATCH_SIZE: Final[int] = 10

DEFAULT_ENDPOINT_PATH: Final[str] = '/device/real/query'


# =============================================================================
# Service Configuration
# =============================================================================


class ServiceConfig(BaseModel):
    """Connection and authentication settings for the device query API.

    Request Signing:
        Every request carries a `signature` header computed as
        `md5(endpoint_path + signing_secret + timestamp)`. Only the resource
        path takes part in the digest, never the full URL, so base_url can
        change without affecting signatures.

    Attributes:
        base_url: Root API URL including scheme, without trailing slash
            (normalized automatically).
        endpoint_path: Resource path of the real-time query endpoint. Used
            both for the request URL and as the signed resource.
        signing_secret: Shared secret mixed into the request signature.
        request_timeout: Connection and read timeout as [connect, read] seconds.
    """

    model_config = ConfigDict(extra='forbid')

    base_url: str = Field(
        description='Root API endpoint URL with scheme, without trailing slash',
    )
    endpoint_path: str = Field(
        default=DEFAULT_ENDPOINT_PATH,
        description='Resource path of the device query endpoint (signed)',
    )
    signing_secret: SecretStr = Field(
        default=SecretStr('interview_token_123'),
        description='Shared secret used in request signatures (masked in logs)',
    )
    request_timeout: tuple[float, float] = Field(
        default=(5.0, 30.0),
        description='[connect_timeout, read_timeout] in seconds; both must be positive',
    )

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, base_url: str) -> str:
        """Validate and normalize the API base URL.

        Args:
            base_url: The API base URL to validate.

        Returns:
            Normalized URL without trailing slash.

        Raises:
            ValueError: If URL is empty or missing http/https scheme.
        """
        if not base_url:
            raise ValueError('base_url cannot be empty')

        if not base_url.startswith(('http://', 'https://')):
            raise ValueError(
                f"base_url must start with 'http://' or 'https://', got: {base_url!r}"
            )

        return base_url.rstrip('/')

    @field_validator('endpoint_path')
    @classmethod
    def validate_endpoint_path(cls, endpoint_path: str) -> str:
        """Ensure the endpoint path is an absolute resource path."""
        if not endpoint_path.startswith('/'):
            raise ValueError(
                f"endpoint_path must start with '/', got: {endpoint_path!r}"
            )
        if '?' in endpoint_path:
            raise ValueError('endpoint_path must not contain a query string')
        return endpoint_path

    @field_validator('signing_secret')
    @classmethod
    def validate_secret_not_empty(cls, signing_secret: SecretStr) -> SecretStr:
        """Ensure the signing secret is not empty or whitespace-only."""
        secret_value: str = signing_secret.get_secret_value()
        if not secret_value or not secret_value.strip():
            raise ValueError('signing_secret cannot be empty or whitespace-only')
        return signing_secret

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout_values_positive(
        cls, timeout: tuple[float, float]
    ) -> tuple[float, float]:
        """Ensure both timeout values are positive.

        Raises:
            ValueError: If either timeout value is non-positive.
        """
        connect_timeout, read_timeout = timeout

        if connect_timeout <= 0:
            raise ValueError(
                f'connect_timeout must be positive, got: {connect_timeout}'
            )
        if read_timeout <= 0:
            raise ValueError(f'read_timeout must be positive, got: {read_timeout}')

        return timeout

    @property
    def endpoint_url(self) -> str:
        """Full URL of the device query endpoint."""
        return f'{self.base_url}{self.endpoint_path}'


# =============================================================================
# Scheduling Configuration
# =============================================================================


class SchedulingConfig(BaseModel):
    """Request pacing and retry settings.

    Rate Limiting:
        The service allows one request per second. The configured interval
        should sit slightly above that (1.1s by default) to absorb clock and
        scheduling jitter. Every physical request, retries included, waits
        for this spacing.

    Retry Behavior:
        Retryable failures (429, 5xx, network errors) are re-attempted with a
        linear backoff of `retry_base_delay_seconds * attempt_number`:

        Example with retry_base_delay_seconds=2.0 and max_retries=3:
          Attempt 1 fails -> wait 2.0 seconds
          Attempt 2 fails -> wait 4.0 seconds
          Attempt 3 fails -> batch recorded as failed

    Attributes:
        batch_size: Serial numbers per request (1-10, the API maximum).
        min_request_interval_seconds: Minimum spacing between two requests.
        max_retries: Total attempts per batch, including the first one.
        retry_base_delay_seconds: Base of the linear backoff.
    """

    model_config = ConfigDict(extra='forbid')

    batch_size: int = Field(
        default=MAX_BATCH_SIZE,
        ge=1,
        le=MAX_BATCH_SIZE,
        description='Serial numbers per request (1-10)',
    )
    min_request_interval_seconds: float = Field(
        default=1.1,
        gt=0.0,
        le=60.0,
        description='Minimum spacing between requests, including safety margin',
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description='Total attempts per batch including the first (1-10)',
    )
    retry_base_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description='Linear backoff base; delay = base * attempt_number',
    )


# =============================================================================
# Device Population Configuration
# =============================================================================


class DeviceConfig(BaseModel):
    """Description of the fixed device population to query.

    Serial numbers are generated as `serial_prefix` followed by the
    zero-padded device index, e.g. `SN-000` through `SN-499` for the defaults.

    Attributes:
        count: Number of devices in the population.
        serial_prefix: Text prepended to every serial number.
        serial_width: Minimum digit count of the zero-padded index.
    """

    model_config = ConfigDict(extra='forbid')

    count: int = Field(default=500, ge=1, description='Device population size')
    serial_prefix: str = Field(default='SN-', description='Serial number prefix')
    serial_width: int = Field(
        default=3, ge=1, le=12, description='Zero-padded index width'
    )


# =============================================================================
# Output Configuration
# =============================================================================


class OutputConfig(BaseModel):
    """Where and how the final aggregate report is written.

    The console report is always printed. File exports are optional and
    disabled unless a path is given.

    Attributes:
        report_path: JSON file receiving summary, devices and failures.
            Extension .json is appended automatically if missing.
        parquet_path: Parquet file receiving the flat device records.
            Extension .parquet is appended automatically if missing.
        parquet_compression: Compression codec for the Parquet writer.
        sample_size: Number of device records shown in the console report.
    """

    model_config = ConfigDict(extra='forbid')

    report_path: Path | None = Field(
        default=None,
        description='JSON report path (.json auto-added). None disables export.',
    )
    parquet_path: Path | None = Field(
        default=None,
        description='Parquet device export path (.parquet auto-added). None disables.',
    )
    parquet_compression: CompressionType = Field(
        default='snappy',
        description="Compression codec: 'snappy', 'gzip', 'brotli', 'lz4', 'zstd', or None",
    )
    sample_size: int = Field(
        default=5, ge=0, le=100, description='Devices shown in the console sample'
    )

    @field_validator('report_path', mode='before')
    @classmethod
    def normalize_report_path(cls, path_value: str | Path | None) -> Path | None:
        """Normalize path and ensure .json extension."""
        if path_value is None:
            return None

        path_string: str = str(path_value)

        if not path_string.lower().endswith('.json'):
            path_string = f'{path_string}.json'

        return Path(path_string)

    @field_validator('parquet_path', mode='before')
    @classmethod
    def normalize_parquet_path(cls, path_value: str | Path | None) -> Path | None:
        """Normalize path and ensure .parquet extension."""
        if path_value is None:
            return None

        path_string: str = str(path_value)

        if not path_string.lower().endswith('.parquet'):
            path_string = f'{path_string}.parquet'

        return Path(path_string)


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Configuration for application logging output.

    Supports dual-destination logging: console (always enabled) and optional
    file output. Console output is typically set to INFO for operational
    visibility, while file output captures DEBUG-level detail.

    Attributes:
        file_path: Path to log file. None disables file logging.
            Extension .log is appended automatically if missing.
        console_level: Minimum log level for console output.
            Accepts level name or numeric value.
        file_level: Minimum log level for file output. Defaults to DEBUG
            if file_path is provided.
    """

    model_config = ConfigDict(extra='forbid')

    file_path: Path | None = Field(
        default=None,
        description='Log file path (.log extension auto-added). None disables file logging.',
    )
    console_level: LogLevelName | int = Field(
        default='INFO',
        description="Console log level: 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL', or int",
    )
    file_level: LogLevelName | int | None = Field(
        default=None,
        description='File log level. None disables file logging.',
    )

    @field_validator('file_path', mode='before')
    @classmethod
    def normalize_log_file_path(cls, path_value: str | Path | None) -> Path | None:
        """Normalize path and ensure .log extension."""
        if path_value is None:
            return None

        path_string: str = str(path_value)

        if not path_string.lower().endswith('.log'):
            path_string = f'{path_string}.log'

        return Path(path_string)

    @field_validator('console_level', 'file_level', mode='after')
    @classmethod
    def validate_numeric_log_level(
        cls, level_value: LogLevelName | int | None
    ) -> LogLevelName | int | None:
        """Validate numeric log levels are standard Python logging values.

        Raises:
            ValueError: If numeric level is not a standard logging value.
        """
        if level_value is None or isinstance(level_value, str):
            return level_value

        if level_value not in LOG_LEVEL_VALUES:
            raise ValueError(
                f'Numeric log level must be one of {sorted(LOG_LEVEL_VALUES)}, '
                f'got: {level_value}'
            )

        return level_value

    @model_validator(mode='after')
    def ensure_file_logging_configuration_consistency(self) -> Self:
        """Ensure file_path and file_level are consistently configured.

        Raises:
            ValueError: If file_level is set but file_path is missing.
        """
        has_file_path: bool = self.file_path is not None
        has_file_level: bool = self.file_level is not None

        if has_file_path and not has_file_level:
            self.file_level = 'DEBUG'

        if has_file_level and not has_file_path:
            raise ValueError(
                'file_level is specified but file_path is missing. '
                'Provide file_path to enable file logging, or remove file_level.'
            )

        return self

    def get_console_level_int(self) -> int:
        """Convert console_level to numeric value for logging module."""
        if isinstance(self.console_level, int):
            return self.console_level
        return LOG_LEVEL_NAME_TO_INT[self.console_level]

    def get_file_level_int(self) -> int | None:
        """Convert file_level to numeric value, or None if file logging is off."""
        if self.file_level is None:
            return None
        if isinstance(self.file_level, int):
            return self.file_level
        return LOG_LEVEL_NAME_TO_INT[self.file_level]


# =============================================================================
# Root Configuration
# =============================================================================


class AggregatorConfig(BaseModel):
    """Root configuration model for the EnergyGrid aggregator.

    Only the service section is required; every other section falls back to
    the documented defaults, which reproduce the API's published limits
    (10 serials per request, 1 request per second).

    Attributes:
        service: Endpoint location, signing secret and timeouts.
        scheduling: Batch size, request spacing and retry policy.
        devices: Device population to generate serial numbers for.
        output: Report export destinations.
        logging: Application logging configuration.
    """

    model_config = ConfigDict(extra='forbid')

    service: ServiceConfig = Field(
        description='Device query API connection and signing settings',
    )
    scheduling: SchedulingConfig = Field(
        default_factory=SchedulingConfig,
        description='Request pacing and retry policy',
    )
    devices: DeviceConfig = Field(
        default_factory=DeviceConfig,
        description='Device population description',
    )
    output: OutputConfig = Field(
        default_factory=OutputConfig,
        description='Report export settings',
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description='Application logging configuration',
    )
