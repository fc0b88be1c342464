"""
Configuration Package for the EnergyGrid aggregator.

Exposes the configuration models and the loader function.
"""

from energygrid_aggregator.config.config_models import (
    MAX_BATCH_SIZE,
    AggregatorConfig,
    CompressionType,
    DeviceConfig,
    LoggingConfig,
    OutputConfig,
    SchedulingConfig,
    ServiceConfig,
)
from energygrid_aggregator.config.loader import load_config

__all__: list[str] = [
    'MAX_BATCH_SIZE',
    'AggregatorConfig',
    'CompressionType',
    'DeviceConfig',
    'LoggingConfig',
    'OutputConfig',
    'SchedulingConfig',
    'ServiceConfig',
    'load_config',
]
