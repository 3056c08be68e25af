################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Unit quaternion value type for LiDAR-to-body rotations."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .units import Tolerances
from .units import assert_finite
from .units import read_only


# Component order used by body_T_laser rows
XYZW_ORDER: list[int] = [1, 2, 3, 0]


@dataclass(frozen=True)
class Quaternion:
    """Rotation quaternion with the scalar part first.

    Settings files list components scalar-last, so from_xyzw()/to_xyzw()
    are the conversions used at that boundary.
    """

    # Components [w, x, y, z], stored read-only
    wxyz: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Validate the components and freeze storage."""
        components: NDArray[np.float64] = np.asarray(self.wxyz, dtype=float)
        if components.shape != (4,):
            raise ValueError(f"quaternion needs 4 components, got {components.shape}")
        assert_finite(components, "quaternion")
        object.__setattr__(self, "wxyz", read_only(components))

    @staticmethod
    def identity() -> "Quaternion":
        """Return the identity rotation."""
        return Quaternion(np.array([1.0, 0.0, 0.0, 0.0]))

    @staticmethod
    def from_wxyz(w: float, x: float, y: float, z: float) -> "Quaternion":
        """Create a quaternion from scalar-first components."""
        return Quaternion(np.array([w, x, y, z], dtype=float))

    @staticmethod
    def from_xyzw(x: float, y: float, z: float, w: float) -> "Quaternion":
        """Create a quaternion from scalar-last components."""
        return Quaternion(np.array([w, x, y, z], dtype=float))

    def to_xyzw(self) -> NDArray[np.float64]:
        """Return a writable copy of the components, scalar last."""
        return self.wxyz[XYZW_ORDER].copy()

    def norm(self) -> float:
        """Return the Euclidean norm of the components."""
        return float(np.linalg.norm(self.wxyz))

    def is_unit(self, atol: float = Tolerances.UNIT_NORM_ATOL) -> bool:
        """Return True if the norm differs from one by at most atol."""
        return abs(self.norm() - 1.0) <= atol

    def normalized(self) -> "Quaternion":
        """Return this rotation scaled to unit norm.

        Raises:
            ValueError: If the norm is too small to define a rotation
        """
        length: float = self.norm()
        if length < Tolerances.EPS:
            raise ValueError(f"quaternion norm {length} is too small to normalize")
        return Quaternion(self.wxyz / length)

    def as_matrix(self) -> NDArray[np.float64]:
        """Return the 3x3 rotation matrix of the normalized quaternion.

        R = (w^2 - |v|^2) I + 2 v v^T + 2 w [v]_x
        """
        unit: NDArray[np.float64] = self.normalized().wxyz
        w: float = float(unit[0])
        v: NDArray[np.float64] = unit[1:]
        v_cross: NDArray[np.float64] = np.array(
            [
                [0.0, -v[2], v[1]],
                [v[2], 0.0, -v[0]],
                [-v[1], v[0], 0.0],
            ]
        )
        return (
            (w * w - float(v @ v)) * np.eye(3)
            + 2.0 * np.outer(v, v)
            + 2.0 * w * v_cross
        )

    def almost_equal(self, other: "Quaternion", atol: float = 1e-9) -> bool:
        """Compare rotations, treating q and -q as the same rotation."""
        return bool(
            np.allclose(self.wxyz, other.wxyz, atol=atol)
            or np.allclose(self.wxyz, -other.wxyz, atol=atol)
        )
