################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Diagonal covariance construction."""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from .units import assert_finite
from .units import read_only


def diagonal_covariance(
    values: Sequence[float] | NDArray[np.float64], size: int
) -> NDArray[np.float64]:
    """Return a read-only size x size matrix with values on the diagonal.

    Off-diagonal entries are exactly zero.
    """
    diag: NDArray[np.float64] = np.asarray(values, dtype=np.float64).reshape(-1)
    if diag.shape != (size,):
        raise ValueError(f"values must have {size} elements")
    assert_finite(diag, "values")
    return read_only(np.diag(diag))


def is_diagonal(matrix: NDArray[np.float64]) -> bool:
    """Return True if every off-diagonal entry is exactly zero."""
    mat: NDArray[np.float64] = np.asarray(matrix, dtype=np.float64)
    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        return False
    return bool(np.all(mat[~np.eye(mat.shape[0], dtype=bool)] == 0.0))
