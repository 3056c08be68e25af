################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Load, validate and derive the estimator configuration from a settings file.

The load runs in a fixed order and stops at the first failure:

  1. Read the file (SourceNotFoundError)
  2. Parse the document (SchemaViolationError)
  3. Check num_of_laser against {1, 2} (UnsupportedSensorCountError)
  4. Initialize extrinsics according to estimate_extrinsic
  5. Read the time offsets
  6. Build the 9x9 diagonal uncertainty matrix
  7. Derive the output paths
  8. Copy the remaining scalar settings

Nothing is returned unless every step succeeds.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from ..math_utils.covariance import diagonal_covariance
from ..math_utils.units import Tolerances
from .config_errors import DOCUMENT_KEY
from .config_errors import SchemaViolationError
from .config_errors import SourceNotFoundError
from .config_errors import UnsupportedSensorCountError
from .estimator_params import EX_CALIB_RESULT_FILE
from .estimator_params import SUPPORTED_LASER_COUNTS
from .estimator_params import UNCERTAINTY_DIM
from .estimator_params import CalibrationParams
from .estimator_params import EstimatorParams
from .estimator_params import ExtrinsicMode
from .estimator_params import FactorParams
from .estimator_params import FrontendParams
from .estimator_params import LaserTopology
from .estimator_params import MappingParams
from .estimator_params import OutputParams
from .estimator_params import SegmentationParams
from .estimator_params import SolverParams
from .estimator_params import ViewerParams
from .estimator_params import WindowParams
from .extrinsics import EXTRINSIC_ROW_SIZE
from .extrinsics import ROW_QUAT_XYZW
from .extrinsics import LaserExtrinsic
from .extrinsics import decode_extrinsic_row
from .settings_format import SettingsDocument
from .settings_format import loads_settings


_LOG: logging.Logger = logging.getLogger(__name__)


# Settings key of the LiDAR count
KEY_NUM_OF_LASER: str = "num_of_laser"
# Settings key of the extrinsic prior matrix
KEY_BODY_T_LASER: str = "body_T_laser"
# Settings key of the time offset row
KEY_TD: str = "td"
# Settings key of the uncertainty vector
KEY_UNCERTAINTY: str = "uncertainty_calib"


def load_estimator_params(path: str | os.PathLike[str]) -> EstimatorParams:
    """Load the estimator configuration from a settings file.

    Raises:
        SourceNotFoundError: If the file cannot be opened or read
        SchemaViolationError: If a key is missing or has the wrong shape
        UnsupportedSensorCountError: If num_of_laser is not 1 or 2
    """
    settings: SettingsDocument = loads_settings(read_settings_text(path))

    num_of_laser: int = read_num_of_laser(settings)
    _LOG.info("Laser number %d", num_of_laser)

    mode: ExtrinsicMode = read_extrinsic_mode(settings)
    extrinsics: tuple[LaserExtrinsic, ...] = read_extrinsics(
        settings, mode, num_of_laser
    )

    time_offsets: tuple[float, ...] = read_time_offsets(settings, num_of_laser)

    uncertainty: NDArray[np.float64] = read_uncertainty(settings)
    _LOG.info("initial covariance XI:\n%s", uncertainty)

    output: OutputParams = read_output_paths(settings)

    topics: tuple[str, ...] = tuple(
        settings.require_str(f"cloud{index}_topic") for index in range(num_of_laser)
    )
    lasers: LaserTopology = LaserTopology(
        num_of_laser=num_of_laser,
        topics=topics,
        extrinsics=extrinsics,
        time_offsets=time_offsets,
    )

    window: WindowParams = WindowParams(
        window_size=_require_positive_int(settings, "window_size"),
        opt_window_size=_require_positive_int(settings, "opt_window_size"),
    )
    _LOG.info(
        "window_size: %d, opt_window_size: %d",
        window.window_size,
        window.opt_window_size,
    )

    estimate_td: bool = settings.require_flag("estimate_td")
    if estimate_td:
        _LOG.info("Unsynchronized sensors, online estimate time offset")
    else:
        _LOG.info("Synchronized sensors, fix time offset")

    calibration: CalibrationParams = CalibrationParams(
        estimate_extrinsic=mode,
        optimal_extrinsic=settings.require_flag("optimal_extrinsic"),
        estimate_td=estimate_td,
        n_cumu_feature=_require_non_negative_int(settings, "n_cumu_feature"),
        eig_initial=settings.require_float("eig_initial"),
        eig_thre_calib=settings.require_float("eig_thre_calib"),
        n_calib=_require_non_negative_int(settings, "n_calib"),
    )

    solver: SolverParams = SolverParams(
        multiple_thread=settings.require_flag("multiple_thread"),
        max_solver_time=settings.require_float("max_solver_time"),
        max_num_iterations=settings.require_int("max_num_iterations"),
    )

    frontend: FrontendParams = FrontendParams(
        n_scans=_require_positive_int(settings, "n_scans"),
        idx_ref=read_idx_ref(settings, num_of_laser),
        scan_period=settings.require_float("scan_period"),
        laser_sync_threshold=settings.require_float("laser_sync_threshold"),
        distance_sq_threshold=settings.require_float("distance_sq_threshold"),
        nearby_scan=settings.require_float("nearby_scan"),
        roi_range=settings.require_float("roi_range"),
        planar_movement=settings.require_flag("planar_movement"),
    )

    segmentation: SegmentationParams = SegmentationParams(
        segment_cloud=settings.require_flag("segment_cloud"),
        horizon_scan=_require_non_negative_int(settings, "horizon_scan"),
        min_cluster_size=_require_non_negative_int(settings, "min_cluster_size"),
        min_line_size=_require_non_negative_int(settings, "min_line_size"),
        segment_valid_point_num=_require_non_negative_int(
            settings, "segment_valid_point_num"
        ),
        segment_valid_line_num=_require_non_negative_int(
            settings, "segment_valid_line_num"
        ),
        segment_theta=_require_non_negative_float(settings, "segment_theta"),
    )

    factors: FactorParams = FactorParams(
        marginalization_factor=settings.require_flag("marginalization_factor"),
        point_plane_factor=settings.require_flag("point_plane_factor"),
        point_edge_factor=settings.require_flag("point_edge_factor"),
        prior_factor=settings.require_flag("prior_factor"),
        prior_factor_pos=settings.require_float("prior_factor_pos"),
        prior_factor_rot=settings.require_float("prior_factor_rot"),
        check_jacobian=settings.require_flag("check_jacobian"),
        evaluate_residual=settings.require_flag("evaluate_residual"),
        optimal_odometry=settings.require_flag("optimal_odometry"),
        min_match_sq_dis=settings.require_float("min_match_sq_dis"),
        min_plane_dis=settings.require_float("min_plane_dis"),
    )

    viewer: ViewerParams = ViewerParams(
        pcl_viewer=settings.require_flag("pcl_viewer"),
        pcl_viewer_normal_ratio=_require_non_negative_int(
            settings, "pcl_viewer_normal_ratio"
        ),
    )

    mapping: MappingParams = MappingParams(
        uncertainty=uncertainty,
        norm_threshold=settings.require_float("norm_threshold"),
        map_corner_res=_require_positive_float(settings, "map_corner_res"),
        map_surf_res=_require_positive_float(settings, "map_surf_res"),
        roi_range_mapping=settings.require_float("roi_range_mapping"),
    )
    _LOG.info(
        "map corner resolution: %s, surf resolution: %s",
        mapping.map_corner_res,
        mapping.map_surf_res,
    )

    return EstimatorParams(
        lasers=lasers,
        window=window,
        calibration=calibration,
        solver=solver,
        frontend=frontend,
        segmentation=segmentation,
        factors=factors,
        mapping=mapping,
        output=output,
        viewer=viewer,
        config_dir=os.path.dirname(os.path.abspath(os.fspath(path))),
    )


def read_settings_text(path: str | os.PathLike[str]) -> str:
    """Return the full text of the settings file.

    The file handle is closed before any parsing happens.
    """
    path_obj: Path = Path(os.fspath(path))
    try:
        with path_obj.open("r", encoding="utf-8") as handle:
            return handle.read()
    except OSError as exc:
        _LOG.error("Settings file doesn't exist or can't be read: %s", path_obj)
        raise SourceNotFoundError(path_obj) from exc
    except UnicodeDecodeError as exc:
        _LOG.error("Settings file is not UTF-8 text: %s", path_obj)
        raise SchemaViolationError(DOCUMENT_KEY, "not UTF-8 text") from exc


def read_num_of_laser(settings: SettingsDocument) -> int:
    """Return the LiDAR count, which must be 1 or 2."""
    num_of_laser: int = settings.require_int(KEY_NUM_OF_LASER)
    if num_of_laser not in SUPPORTED_LASER_COUNTS:
        _LOG.error("num_of_laser should be 1 or 2, got %d", num_of_laser)
        raise UnsupportedSensorCountError(num_of_laser)
    return num_of_laser


def read_extrinsic_mode(settings: SettingsDocument) -> ExtrinsicMode:
    """Return the extrinsic estimation mode from estimate_extrinsic."""
    value: int = settings.require_int("estimate_extrinsic")
    try:
        mode: ExtrinsicMode = ExtrinsicMode(value)
    except ValueError as exc:
        raise _violation("estimate_extrinsic", "must be 0, 1 or 2") from exc

    if mode is ExtrinsicMode.UNKNOWN:
        _LOG.warning("Have no prior about extrinsic param, calibrate extrinsic param")
    elif mode is ExtrinsicMode.REFINE:
        _LOG.warning("Optimize extrinsic param around initial guess")
    else:
        _LOG.warning("Fix extrinsic param")
    return mode


def read_extrinsics(
    settings: SettingsDocument, mode: ExtrinsicMode, num_of_laser: int
) -> tuple[LaserExtrinsic, ...]:
    """Return one extrinsic per LiDAR according to the estimation mode.

    In UNKNOWN mode body_T_laser is not read at all and every LiDAR starts at
    the identity transform.
    """
    extrinsics: list[LaserExtrinsic] = []
    if not mode.reads_prior():
        extrinsics = [LaserExtrinsic.identity() for _ in range(num_of_laser)]
    else:
        matrix: NDArray[np.float64] = settings.require_matrix(
            KEY_BODY_T_LASER, rows=num_of_laser, cols=EXTRINSIC_ROW_SIZE
        )
        for index, row in enumerate(matrix):
            quat_norm: float = float(np.linalg.norm(row[ROW_QUAT_XYZW]))
            if abs(quat_norm - 1.0) > Tolerances.UNIT_NORM_ATOL:
                _LOG.warning(
                    "body_T_laser row %d quaternion has norm %f, normalizing",
                    index,
                    quat_norm,
                )
            try:
                extrinsics.append(decode_extrinsic_row(row))
            except ValueError as exc:
                raise _violation(KEY_BODY_T_LASER, f"row {index}: {exc}") from exc

    for index, extrinsic in enumerate(extrinsics):
        _LOG.info("Initial T_BL of laser %d:\n%s", index, extrinsic.as_matrix())

    return tuple(extrinsics)


def read_time_offsets(
    settings: SettingsDocument, num_of_laser: int
) -> tuple[float, ...]:
    """Return one time offset per LiDAR from the single td row."""
    row: NDArray[np.float64] = settings.require_row(KEY_TD, num_of_laser)
    return tuple(float(td) for td in row)


def read_uncertainty(settings: SettingsDocument) -> NDArray[np.float64]:
    """Return the 9x9 diagonal calibration uncertainty matrix.

    The nine values are ordered rotation (3), translation (3), point (3).
    """
    values: NDArray[np.float64] = settings.require_row(KEY_UNCERTAINTY, UNCERTAINTY_DIM)
    return diagonal_covariance(values, UNCERTAINTY_DIM)


def read_output_paths(settings: SettingsDocument) -> OutputParams:
    """Return output file paths as output_path + suffix.

    Plain string concatenation, no separator is inserted and nothing is
    created on disk.
    """
    output_path: str = settings.require_str("output_path")

    ex_calib_suffix: str = EX_CALIB_RESULT_FILE
    if settings.has("ex_calib_result_path"):
        ex_calib_suffix = settings.require_str("ex_calib_result_path")

    output: OutputParams = OutputParams(
        output_path=output_path,
        result_save=settings.require_flag("mloam_result_save"),
        odom_path=output_path + settings.require_str("mloam_odom_path"),
        map_path=output_path + settings.require_str("mloam_map_path"),
        gt_path=output_path + settings.require_str("mloam_gt_path"),
        ex_calib_result_path=output_path + ex_calib_suffix,
    )
    _LOG.info("gt path: %s", output.gt_path)
    _LOG.info("result path: %s, %s", output.odom_path, output.map_path)
    return output


def read_idx_ref(settings: SettingsDocument, num_of_laser: int) -> int:
    """Return the reference LiDAR index, which must name a configured LiDAR."""
    idx_ref: int = settings.require_int("idx_ref")
    if not 0 <= idx_ref < num_of_laser:
        raise _violation("idx_ref", f"must be in [0, {num_of_laser - 1}]")
    return idx_ref


def _violation(key: str, reason: str) -> SchemaViolationError:
    _LOG.error("Failed to load %s: %s", key, reason)
    return SchemaViolationError(key, reason)


def _require_positive_int(settings: SettingsDocument, key: str) -> int:
    value: int = settings.require_int(key)
    if value <= 0:
        raise _violation(key, "must be positive")
    return value


def _require_non_negative_int(settings: SettingsDocument, key: str) -> int:
    value: int = settings.require_int(key)
    if value < 0:
        raise _violation(key, "must be non-negative")
    return value


def _require_positive_float(settings: SettingsDocument, key: str) -> float:
    value: float = settings.require_float(key)
    if value <= 0.0:
        raise _violation(key, "must be positive")
    return value


def _require_non_negative_float(settings: SettingsDocument, key: str) -> float:
    value: float = settings.require_float(key)
    if value < 0.0:
        raise _violation(key, "must be non-negative")
    return value
