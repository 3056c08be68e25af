################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Estimator configuration loading."""

from __future__ import annotations

from oasis_estimator.config.config_errors import EstimatorConfigError
from oasis_estimator.config.config_errors import SchemaViolationError
from oasis_estimator.config.config_errors import SourceNotFoundError
from oasis_estimator.config.config_errors import UnsupportedSensorCountError
from oasis_estimator.config.config_loader import load_estimator_params
from oasis_estimator.config.estimator_params import EstimatorParams
from oasis_estimator.config.estimator_params import ExtrinsicMode
from oasis_estimator.config.extrinsics import LaserExtrinsic


# Short name for the one-shot settings load
load = load_estimator_params


__all__ = [
    "EstimatorConfigError",
    "EstimatorParams",
    "ExtrinsicMode",
    "LaserExtrinsic",
    "SchemaViolationError",
    "SourceNotFoundError",
    "UnsupportedSensorCountError",
    "load",
    "load_estimator_params",
]
