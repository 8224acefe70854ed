"""
Command line entry point.

Usage:
    biomass-correction --config run.yaml
    biomass-correction --config run.yaml --reference-year 1991 --figures-dir figures
"""

import argparse
import sys

import yaml

from .config import load_config
from .errors import BiomassCorrectionError
from .logging_utils import setup_logging
from .pipeline import run_pipeline


def parse_arguments(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Correct assessed biomass for unassessed young ages and the BC region",
    )
    parser.add_argument('--config', type=str, help='Path to configuration file')
    parser.add_argument('--reference-year', type=int, help='Year of the exported summary table')
    parser.add_argument('--output', type=str, help='Summary CSV path')
    parser.add_argument('--figures-dir', type=str, help='Directory for diagnostic figures')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')
    parser.add_argument('--log-file', type=str, help='Optional log file')
    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    if args.reference_year is not None:
        config['output']['reference_year'] = args.reference_year
    if args.output:
        config['output']['summary_file'] = args.output
    if args.figures_dir:
        config['output']['figures_dir'] = args.figures_dir
    return config


def main(argv=None) -> int:
    args = parse_arguments(argv)
    logger = setup_logging(args.log_level, 'cli', args.log_file)

    try:
        config = apply_overrides(load_config(args.config), args)
        run_pipeline(config)
    except (BiomassCorrectionError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
