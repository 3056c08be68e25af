################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################
"""Tests for diagonal covariance construction."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.typing import NDArray

from oasis_estimator.math_utils.covariance import diagonal_covariance
from oasis_estimator.math_utils.covariance import is_diagonal


def test_diagonal_matches_input() -> None:
    """Diagonal entries equal the input and off-diagonals are exactly zero."""
    values: list[float] = [1.0, 1.0, 1.0, 0.1, 0.1, 0.1, 0.01, 0.01, 0.01]
    matrix: NDArray[np.float64] = diagonal_covariance(values, 9)

    assert matrix.shape == (9, 9)
    assert np.array_equal(np.diag(matrix), np.array(values))
    assert np.count_nonzero(matrix - np.diag(np.diag(matrix))) == 0
    assert is_diagonal(matrix)


def test_result_is_read_only() -> None:
    """The matrix cannot be modified after construction."""
    matrix: NDArray[np.float64] = diagonal_covariance([1.0, 2.0, 3.0], 3)
    with pytest.raises(ValueError):
        matrix[0, 1] = 1.0


def test_wrong_size_rejected() -> None:
    """A vector of the wrong length is rejected."""
    with pytest.raises(ValueError):
        diagonal_covariance([1.0, 2.0], 3)


def test_is_diagonal_detects_off_diagonal() -> None:
    """Non-square or off-diagonal matrices are not diagonal."""
    matrix: NDArray[np.float64] = np.eye(3)
    matrix[2, 0] = 1e-9
    assert not is_diagonal(matrix)
    assert not is_diagonal(np.zeros((2, 3)))
