################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Structured configuration for the multi-LiDAR odometry and mapping estimator.

An EstimatorParams tree is only produced by a successful settings load and is
immutable afterwards, so it can be shared between threads without locking.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from dataclasses import fields
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..math_utils.covariance import is_diagonal
from ..math_utils.quat import Quaternion
from ..math_utils.units import read_only
from .extrinsics import LaserExtrinsic


# Sensor counts the estimator is built for
SUPPORTED_LASER_COUNTS: tuple[int, ...] = (1, 2)

# Size of the calibration uncertainty matrix (rotation, translation, point)
UNCERTAINTY_DIM: int = 9

# Extrinsic result file name used when the settings do not name one
EX_CALIB_RESULT_FILE: str = "extrinsic_parameter.txt"


class ExtrinsicMode(enum.Enum):
    """
    How the LiDAR-to-body extrinsics are initialized and treated

    Attributes:
        FIXED: Use the prior from the settings and hold it constant
        REFINE: Use the prior from the settings as an initial guess
        UNKNOWN: No prior; start from identity and calibrate online
    """

    FIXED = 0
    REFINE = 1
    UNKNOWN = 2

    def reads_prior(self) -> bool:
        """Return True if the settings must provide body_T_laser."""
        return self is not ExtrinsicMode.UNKNOWN

    def optimizes(self) -> bool:
        """Return True if the extrinsics are free variables downstream."""
        return self is not ExtrinsicMode.FIXED


@dataclass(frozen=True)
class LaserTopology:
    """Per-LiDAR settings, all indexed by sensor.

    The constructor takes the sensor count once and rejects any sequence whose
    length differs from it.
    """

    # Number of LiDARs, 1 or 2
    num_of_laser: int
    # Point cloud topic per LiDAR
    topics: tuple[str, ...]
    # LiDAR-to-body transform per LiDAR
    extrinsics: tuple[LaserExtrinsic, ...]
    # Time offset per LiDAR in seconds, sensor clock minus reference clock
    time_offsets: tuple[float, ...]

    def __post_init__(self) -> None:
        """Check sensor count and per-sensor sequence lengths."""
        if self.num_of_laser not in SUPPORTED_LASER_COUNTS:
            raise ValueError(f"num_of_laser must be 1 or 2, got {self.num_of_laser}")

        object.__setattr__(self, "topics", tuple(self.topics))
        object.__setattr__(self, "extrinsics", tuple(self.extrinsics))
        object.__setattr__(
            self, "time_offsets", tuple(float(td) for td in self.time_offsets)
        )

        for name in ("topics", "extrinsics", "time_offsets"):
            length: int = len(getattr(self, name))
            if length != self.num_of_laser:
                raise ValueError(
                    f"{name} has {length} entries, expected {self.num_of_laser}"
                )

    def rotations(self) -> tuple[Quaternion, ...]:
        """Return q_BL for every LiDAR."""
        return tuple(extrinsic.rotation for extrinsic in self.extrinsics)

    def translations(self) -> tuple[NDArray[np.float64], ...]:
        """Return t_BL for every LiDAR."""
        return tuple(extrinsic.translation for extrinsic in self.extrinsics)


@dataclass(frozen=True)
class WindowParams:
    """Sliding-window sizes."""

    # Number of frames kept in the sliding window
    window_size: int
    # Number of frames optimized inside the window
    opt_window_size: int


@dataclass(frozen=True)
class CalibrationParams:
    """Online extrinsic and time-offset calibration switches."""

    # Extrinsic initialization and optimization policy
    estimate_extrinsic: ExtrinsicMode
    # Use the optimal extrinsic estimate once calibration converges
    optimal_extrinsic: bool
    # Estimate the LiDAR time offsets online
    estimate_td: bool
    # Number of accumulated feature frames used for calibration
    n_cumu_feature: int
    # Initial eigenvalue for calibration degeneracy detection
    eig_initial: float
    # Eigenvalue threshold for accepting a calibration
    eig_thre_calib: float
    # Number of calibrations to collect before converging
    n_calib: int


@dataclass(frozen=True)
class SolverParams:
    """Nonlinear solver limits."""

    # Use multiple solver threads
    multiple_thread: bool
    # Maximum solver time per optimization in seconds
    max_solver_time: float
    # Maximum solver iterations per optimization
    max_num_iterations: int


@dataclass(frozen=True)
class FrontendParams:
    """Scan registration and feature matching parameters."""

    # Number of scan rings per LiDAR
    n_scans: int
    # Index of the reference LiDAR
    idx_ref: int
    # Scan period in seconds
    scan_period: float
    # Maximum time difference between synchronized scans in seconds
    laser_sync_threshold: float
    # Squared distance threshold for feature correspondences in m^2
    distance_sq_threshold: float
    # Number of neighboring scan rings searched for correspondences
    nearby_scan: float
    # Range of interest for odometry in meters
    roi_range: float
    # Constrain motion to the ground plane
    planar_movement: bool


@dataclass(frozen=True)
class SegmentationParams:
    """Ground, cluster and line segmentation of incoming clouds."""

    # Enable cloud segmentation
    segment_cloud: bool
    # Number of columns in the range image
    horizon_scan: int
    # Minimum number of points in a valid cluster
    min_cluster_size: int
    # Minimum number of points in a valid line
    min_line_size: int
    # Minimum number of points for a segment to be kept
    segment_valid_point_num: int
    # Minimum number of lines for a segment to be kept
    segment_valid_line_num: int
    # Angular threshold for cluster growth in radians
    segment_theta: float


@dataclass(frozen=True)
class FactorParams:
    """Residual classes and prior weights of the optimization."""

    # Keep a marginalization prior for dropped states
    marginalization_factor: bool
    # Add point-to-plane residuals
    point_plane_factor: bool
    # Add point-to-edge residuals
    point_edge_factor: bool
    # Add the extrinsic prior residual
    prior_factor: bool
    # Weight of the prior residual on position
    prior_factor_pos: float
    # Weight of the prior residual on rotation
    prior_factor_rot: float
    # Compare analytic against numeric Jacobians
    check_jacobian: bool
    # Report residuals before and after each optimization
    evaluate_residual: bool
    # Use the optimized odometry as the mapping prior
    optimal_odometry: bool
    # Minimum squared distance for a correspondence match in m^2
    min_match_sq_dis: float
    # Minimum point-to-plane distance in meters
    min_plane_dis: float


@dataclass(frozen=True)
class MappingParams:
    """Mapping resolutions and uncertainty model."""

    # 9x9 diagonal uncertainty: rotation (3), translation (3), point (3)
    uncertainty: NDArray[np.float64]
    # Degeneracy norm threshold
    norm_threshold: float
    # Voxel size of the corner feature map in meters
    map_corner_res: float
    # Voxel size of the surface feature map in meters
    map_surf_res: float
    # Range of interest for mapping in meters
    roi_range_mapping: float

    def __post_init__(self) -> None:
        """Freeze the uncertainty matrix and check its structure."""
        uncertainty: NDArray[np.float64] = read_only(self.uncertainty)
        if uncertainty.shape != (UNCERTAINTY_DIM, UNCERTAINTY_DIM):
            raise ValueError("uncertainty must be shape (9, 9)")
        if not is_diagonal(uncertainty):
            raise ValueError("uncertainty must be diagonal")
        object.__setattr__(self, "uncertainty", uncertainty)


@dataclass(frozen=True)
class OutputParams:
    """Result file locations.

    Derived paths are the output directory followed by the configured file
    suffix. Nothing is created on disk here.
    """

    # Base output directory, used verbatim as a prefix
    output_path: str
    # Save odometry and map results
    result_save: bool
    # Odometry trajectory file
    odom_path: str
    # Map file
    map_path: str
    # Ground truth trajectory file
    gt_path: str
    # Extrinsic calibration result file
    ex_calib_result_path: str

    def __post_init__(self) -> None:
        """Check that every derived path lives under the output directory."""
        for name in ("odom_path", "map_path", "gt_path", "ex_calib_result_path"):
            if not getattr(self, name).startswith(self.output_path):
                raise ValueError(f"{name} must start with output_path")


@dataclass(frozen=True)
class ViewerParams:
    """Point cloud viewer switches."""

    # Show the PCL viewer
    pcl_viewer: bool
    # Draw every Nth normal in the viewer
    pcl_viewer_normal_ratio: int


@dataclass(frozen=True)
class EstimatorParams:
    """Complete configuration tree for the estimator."""

    lasers: LaserTopology
    window: WindowParams
    calibration: CalibrationParams
    solver: SolverParams
    frontend: FrontendParams
    segmentation: SegmentationParams
    factors: FactorParams
    mapping: MappingParams
    output: OutputParams
    viewer: ViewerParams
    # Directory containing the settings file
    config_dir: str

    def num_of_laser(self) -> int:
        """Return the configured number of LiDARs."""
        return self.lasers.num_of_laser

    def q_bl(self) -> tuple[Quaternion, ...]:
        """Return the LiDAR-to-body rotations."""
        return self.lasers.rotations()

    def t_bl(self) -> tuple[NDArray[np.float64], ...]:
        """Return the LiDAR-to-body translations."""
        return self.lasers.translations()

    def td_bl(self) -> tuple[float, ...]:
        """Return the LiDAR time offsets in seconds."""
        return self.lasers.time_offsets

    def uncertainty(self) -> NDArray[np.float64]:
        """Return the 9x9 calibration uncertainty matrix."""
        return self.mapping.uncertainty

    def as_nested_dict(self) -> dict[str, Any]:
        """Return a nested dict representation for debugging."""
        return _dataclass_to_dict(self)


def _dataclass_to_dict(value: Any) -> Any:
    """Convert dataclasses, enums and numpy arrays into plain Python values."""
    if hasattr(value, "__dataclass_fields__"):
        return {
            field.name: _dataclass_to_dict(getattr(value, field.name))
            for field in fields(value)
        }
    if isinstance(value, enum.Enum):
        return value.name.lower()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, tuple):
        return [_dataclass_to_dict(item) for item in value]
    return value
