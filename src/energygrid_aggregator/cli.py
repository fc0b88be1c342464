# energygrid_aggregator/cli.py
"""
Command-line entry point.

    energygrid-aggregator -c config/aggregator_config.yaml
    python -m energygrid_aggregator --devices 25 --log-level DEBUG

Exit status is 0 when the run completes, even if some batches failed, and 1
when the run cannot be set up (missing or invalid configuration, client
construction failure). A report export that fails after collection is
logged; the console report is still printed and the exit status stays 0.
"""

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import Any

import yaml

from energygrid_aggregator.common import setup_logger
from energygrid_aggregator.config import AggregatorConfig, load_config
from energygrid_aggregator.config.loader import DEFAULT_CONFIG_PATH
from energygrid_aggregator.pipeline import AggregatorError, AggregatorPipeline

__all__: list[str] = ['build_parser', 'main']

logger: logging.Logger = logging.getLogger(__name__)

EXIT_OK: int = 0
EXIT_FATAL: int = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='energygrid-aggregator',
        description='Collect real-time telemetry for every device of the fleet '
        'from the EnergyGrid API and print an aggregate report.',
    )
    parser.add_argument(
        '-c',
        '--config',
        default=str(DEFAULT_CONFIG_PATH),
        help='YAML configuration file (default: %(default)s)',
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Override the configured console log level',
    )
    parser.add_argument(
        '--devices',
        type=int,
        default=None,
        help='Override the configured device population size',
    )
    return parser


def _apply_overrides(
    config: AggregatorConfig, arguments: argparse.Namespace
) -> AggregatorConfig:
    if arguments.devices is None and arguments.log_level is None:
        return config

    # Re-validate so overrides obey the same constraints as the file
    raw_config: dict[str, Any] = config.model_dump()
    if arguments.devices is not None:
        raw_config['devices']['count'] = arguments.devices
    if arguments.log_level is not None:
        raw_config['logging']['console_level'] = arguments.log_level

    return AggregatorConfig.model_validate(raw_config)


def main(argv: Sequence[str] | None = None) -> int:
    """
    Run the aggregator and return the process exit status.

    Args:
        argv: Command-line arguments without the program name; defaults to
            sys.argv[1:].
    """
    arguments: argparse.Namespace = build_parser().parse_args(argv)

    # Console logging before the config is loaded so setup errors are visible
    console_level: int = logging.getLevelNamesMapping()[arguments.log_level or 'INFO']
    setup_logger(logging_level=console_level)

    try:
        config: AggregatorConfig = _apply_overrides(
            load_config(arguments.config), arguments
        )
        setup_logger(config=config.logging)
        pipeline = AggregatorPipeline(config)
    except (AggregatorError, OSError, ValueError, yaml.YAMLError) as error:
        logger.error('Fatal error: %s', error)
        return EXIT_FATAL

    try:
        pipeline.run()
    except AggregatorError as error:
        logger.error('Fatal error: %s', error)
        return EXIT_FATAL

    print(pipeline.render())
    if pipeline.export_error is not None:
        logger.warning('Report files were not written: %s', pipeline.export_error)
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
