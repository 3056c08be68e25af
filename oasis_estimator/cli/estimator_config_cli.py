################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""
Entry point for checking an estimator settings file
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

import yaml

from oasis_estimator.config.config_errors import EstimatorConfigError
from oasis_estimator.config.config_loader import load_estimator_params
from oasis_estimator.config.estimator_params import EstimatorParams


################################################################################
# Entry point
################################################################################


def _parse_args(args: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load an estimator settings file and report the result"
    )
    parser.add_argument(
        "config_file",
        type=Path,
        help="Path to the estimator settings YAML file",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print the resolved configuration as YAML",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level for load diagnostics",
    )
    return parser.parse_args(args=args)


def main(args: Optional[list[str]] = None) -> None:
    options = _parse_args(args=args)

    logging.basicConfig(
        level=getattr(logging, options.log_level),
        format="[%(levelname)s] [%(name)s]: %(message)s",
    )

    try:
        params: EstimatorParams = load_estimator_params(options.config_file)
    except EstimatorConfigError as error:
        raise SystemExit(f"Error: {error}") from error

    if options.dump:
        print(
            yaml.safe_dump(
                params.as_nested_dict(),
                sort_keys=False,
                indent=2,
                default_flow_style=False,
            ),
            end="",
        )


if __name__ == "__main__":
    main()
