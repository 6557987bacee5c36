#!/usr/bin/env python
"""
Run one or more pipeline configurations and report what they produced.

Usage:
    python examples/make_demo_data.py
    python examples/run_pipeline.py examples/configs/lps_bargraph.yaml
    python examples/run_pipeline.py examples/configs/*.yaml --log-level DEBUG --show

Relative paths inside a configuration resolve against the configuration file's
directory, so the example configs read from ``examples/data`` and write charts to
``examples/output`` wherever the script is started from.
"""

import argparse
import sys

import matplotlib.pyplot as plt

from platetidy import (
    PlateTidyError,
    configure_console_logging,
    configure_file_logging,
    logger,
    reset_logging,
    run_pipeline_from_yaml,
)


def main():
    """Run each configuration given on the command line."""
    parser = argparse.ArgumentParser(description="Tidy, summarize and plot plate-reader spreadsheets")
    parser.add_argument('configs', nargs='+', help='Pipeline YAML file(s)')
    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        help='Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)'
    )
    parser.add_argument('--log-file', type=str, help='Also write DEBUG logs to this file')
    parser.add_argument('--show', action='store_true', help='Show the charts after saving them')
    args = parser.parse_args()

    reset_logging()
    configure_console_logging(level=args.log_level)
    if args.log_file:
        configure_file_logging(args.log_file)

    failures = 0
    for config_path in args.configs:
        try:
            result = run_pipeline_from_yaml(config_path, close_figures=not args.show)
        except PlateTidyError as e:
            logger.error("{} failed: {}", config_path, e)
            failures += 1
            continue

        logger.info("{}: {} long row(s), {} group(s)", config_path, len(result.long), len(result.summary))
        print(result.summary.to_string(index=False))
        for name, path in result.outputs.items():
            logger.info("  {} -> {}", name, path)

    if args.show:
        plt.show()
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
