################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Errors raised while loading the estimator configuration."""

from __future__ import annotations

import os


# Key reported when the document itself, not a single setting, is malformed
DOCUMENT_KEY: str = "<document>"


class EstimatorConfigError(Exception):
    """Raised when the estimator configuration cannot be loaded."""


class SourceNotFoundError(EstimatorConfigError):
    """Raised when the settings file cannot be opened or read."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path: str = os.fspath(path)
        super().__init__(f"Settings file could not be read: {self.path}")


class SchemaViolationError(EstimatorConfigError):
    """Raised when a required key is absent or its value has the wrong shape.

    Attributes:
        key: Name of the offending setting, or DOCUMENT_KEY
        reason: Human-readable description of the violation
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key: str = key
        self.reason: str = reason
        super().__init__(f"{key}: {reason}")


class UnsupportedSensorCountError(EstimatorConfigError):
    """Raised when num_of_laser is outside the supported set {1, 2}."""

    def __init__(self, value: int) -> None:
        self.value: int = value
        super().__init__(f"num_of_laser must be 1 or 2, got {value}")
