################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""LiDAR-to-body extrinsic transforms and their settings-row encoding.

One row of the body_T_laser matrix holds seven values in the order

    qx, qy, qz, qw, tx, ty, tz

that is, the rotation quaternion (scalar last) followed by the translation
in meters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from ..math_utils.quat import Quaternion
from ..math_utils.units import assert_finite
from ..math_utils.units import read_only


# Number of values in one extrinsic row
EXTRINSIC_ROW_SIZE: int = 7
# Slice of the quaternion components (x, y, z, w) within a row
ROW_QUAT_XYZW: slice = slice(0, 4)
# Slice of the translation components (x, y, z) within a row
ROW_TRANSLATION: slice = slice(4, 7)


@dataclass(frozen=True)
class LaserExtrinsic:
    """Rigid transform from a LiDAR frame into the body frame.

    Attributes:
        rotation: Unit quaternion q_BL, normalized at construction
        translation: Translation t_BL in meters, read-only shape (3,)
    """

    rotation: Quaternion
    translation: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Normalize the rotation and freeze the translation."""
        if not isinstance(self.rotation, Quaternion):
            raise ValueError("rotation must be a Quaternion")
        translation: NDArray[np.float64] = np.asarray(self.translation, dtype=float)
        if translation.shape != (3,):
            raise ValueError("translation must be shape (3,)")
        assert_finite(translation, "translation")
        object.__setattr__(self, "rotation", self.rotation.normalized())
        object.__setattr__(self, "translation", read_only(translation))

    @staticmethod
    def identity() -> "LaserExtrinsic":
        """Return the transform used when no prior is available."""
        return LaserExtrinsic(Quaternion.identity(), np.zeros(3, dtype=float))

    def as_matrix(self) -> NDArray[np.float64]:
        """Return the 4x4 homogeneous transform T_BL."""
        T: NDArray[np.float64] = np.eye(4, dtype=float)
        T[:3, :3] = self.rotation.as_matrix()
        T[:3, 3] = self.translation
        return T


def decode_extrinsic_row(row: Sequence[float] | NDArray[np.float64]) -> LaserExtrinsic:
    """Build an extrinsic from one body_T_laser row.

    Raises:
        ValueError: If the row has the wrong length, is non-finite, or the
            quaternion has zero norm
    """
    values: NDArray[np.float64] = np.asarray(row, dtype=float)
    if values.shape != (EXTRINSIC_ROW_SIZE,):
        raise ValueError(f"extrinsic row must have {EXTRINSIC_ROW_SIZE} values")
    assert_finite(values, "extrinsic row")

    qx, qy, qz, qw = (float(value) for value in values[ROW_QUAT_XYZW])
    return LaserExtrinsic(
        rotation=Quaternion.from_xyzw(qx, qy, qz, qw),
        translation=values[ROW_TRANSLATION],
    )


def encode_extrinsic_row(extrinsic: LaserExtrinsic) -> NDArray[np.float64]:
    """Return the body_T_laser row for an extrinsic."""
    row: NDArray[np.float64] = np.empty(EXTRINSIC_ROW_SIZE, dtype=float)
    row[ROW_QUAT_XYZW] = extrinsic.rotation.to_xyzw()
    row[ROW_TRANSLATION] = extrinsic.translation
    return row
