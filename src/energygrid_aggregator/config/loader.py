# energygrid_aggregator/config/loader.py
"""
Configuration Loading Logic.

This module handles the physical retrieval, parsing, and initial validation of
the application configuration. It serves as the bridge between raw YAML files
on the disk and the strictly typed Pydantic models defined in `config_models.py`.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from energygrid_aggregator.config.config_models import AggregatorConfig

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Path = Path('config/aggregator_config.yaml')


def load_config(config_path: Path | str | None = None) -> AggregatorConfig:
    """Load and validate aggregator configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file (relative or absolute).
                    If None, defaults to 'config/aggregator_config.yaml' relative
                    to the current working directory.

    Returns:
        Validated AggregatorConfig instance ready for use.

    Raises:
        FileNotFoundError: If config file does not exist at the specified path.
        yaml.YAMLError: If YAML file is malformed or cannot be parsed.
        ValueError: If configuration fails Pydantic validation or the file
            does not contain a mapping.

    Example:
        >>> config = load_config("config/aggregator_config.yaml")
        >>> print(config.service.endpoint_url)
        'http://localhost:3000/device/real/query'
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
        logger.debug('No config path provided, using default: %s', config_path)
    else:
        config_path = Path(config_path)

    logger.info('Loading aggregator configuration from: %s', config_path)

    if not config_path.exists():
        error_message: str = f'Configuration file not found: {config_path}'
        logger.error(error_message)
        raise FileNotFoundError(error_message)

    try:
        with Path.open(config_path, encoding='utf-8') as config_file:
            raw_config_data: Any = yaml.safe_load(config_file)
    except yaml.YAMLError as error:
        error_message = f'Failed to parse YAML configuration: {error}'
        logger.error(error_message)
        raise yaml.YAMLError(error_message) from error

    if not isinstance(raw_config_data, dict):
        error_message = (
            f'Configuration file must contain a mapping, '
            f'got {type(raw_config_data).__name__}'
        )
        logger.error(error_message)
        raise ValueError(error_message)

    try:
        validated_config = AggregatorConfig(**raw_config_data)
    except ValueError as error:
        error_message = f'Configuration validation failed: {error}'
        logger.error(error_message)
        raise ValueError(error_message) from error

    logger.info('Configuration loaded and validated successfully')
    return validated_config
