################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Numeric tolerances and finiteness checks."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


class Tolerances:
    """Tolerances shared by the math utilities."""

    # Smallest quaternion norm that can be normalized
    EPS: float = 1e-12
    # Allowed deviation from unit norm before a quaternion is reported
    UNIT_NORM_ATOL: float = 1e-3


def assert_finite(x: NDArray[np.float64], name: str) -> None:
    """Raise ValueError when the array contains non-finite values."""
    if not np.all(np.isfinite(x)):
        raise ValueError(f"{name} must be finite")


def read_only(x: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return a float64 copy of the array that cannot be written to."""
    array: NDArray[np.float64] = np.array(x, dtype=np.float64)
    array.setflags(write=False)
    return array
