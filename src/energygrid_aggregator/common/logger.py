# energygrid_aggregator/common/logger.py
"""
Logging configuration for the energygrid_aggregator package.

Provides centralized logging setup to ensure consistent log formatting
and output across all modules in the package.
"""

import logging
import sys
from pathlib import Path

from energygrid_aggregator.config import LoggingConfig

__all__: list[str] = ['PACKAGE_LOGGER_NAME', 'setup_logger']

PACKAGE_LOGGER_NAME: str = 'energygrid_aggregator'


def setup_logger(
    logging_level: int | None = None,
    config: LoggingConfig | None = None,
) -> logging.Logger:
    """
    Set up logging for the energygrid_aggregator package.

    Configures the package-level logger so that every module logger created
    with logging.getLogger(__name__) inherits the same handlers and level.

    The function is idempotent - calling it multiple times will completely
    reset and reconfigure the handlers based on the provided arguments.

    Args:
        logging_level: Console level (e.g., logging.INFO) to use when NO
                      config object is provided. Defaults to INFO.
        config: Optional validated configuration object. If provided:
                - Console logging uses config.console_level
                - File logging is enabled if config.file_path is set
                - The 'logging_level' argument is ignored.

    Returns:
        The package-level logger ('energygrid_aggregator').

    Example:
        >>> setup_logger()
        >>> setup_logger(logging_level=logging.DEBUG)
        >>> setup_logger(config=load_config().logging)
    """
    package_logger: logging.Logger = logging.getLogger(PACKAGE_LOGGER_NAME)

    # Clear existing handlers so repeated calls do not duplicate output
    package_logger.handlers.clear()

    log_format: logging.Formatter = logging.Formatter(
        fmt='%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    # --- 1. Console Handler ---
    if logging_level is None:
        logging_level = logging.INFO
    if config:
        console_level: int = config.get_console_level_int()
    else:
        console_level = logging_level

    # stderr keeps the console report on stdout clean
    console_handler: logging.Handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(log_format)
    console_handler.setLevel(console_level)
    package_logger.addHandler(console_handler)

    # --- 2. File Handler (Config Only) ---
    file_level: int | None = config.get_file_level_int() if config else None

    if config and config.file_path and file_level is not None:
        log_file_path: Path = config.file_path
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler: logging.FileHandler = logging.FileHandler(
            filename=str(log_file_path),
            mode='a',
            encoding='utf-8',
        )
        file_handler.setFormatter(log_format)
        file_handler.setLevel(file_level)
        package_logger.addHandler(file_handler)

    # --- 3. Package Logger Level ---
    # Must be the most verbose of all handler levels or DEBUG never reaches the file
    effective_level: int = console_level
    if file_level is not None:
        effective_level = min(console_level, file_level)

    package_logger.setLevel(effective_level)

    return package_logger
