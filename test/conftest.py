################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Shared fixtures for estimator configuration tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from typing import Callable

import numpy as np
import pytest

from oasis_estimator.config.settings_format import dumps_settings


SettingsWriter = Callable[[dict[str, Any]], Path]


def make_settings(num_of_laser: int = 2) -> dict[str, Any]:
    """Return a complete, valid settings mapping."""
    values: dict[str, Any] = {
        "cloud0_topic": "/left/velodyne_points",
        "cloud1_topic": "/right/velodyne_points",
        "multiple_thread": 1,
        "max_solver_time": 0.3,
        "max_num_iterations": 15,
        "output_path": "/data/run1/",
        "mloam_result_save": 1,
        "mloam_odom_path": "odom.csv",
        "mloam_map_path": "map.csv",
        "mloam_gt_path": "gt.csv",
        "num_of_laser": num_of_laser,
        "window_size": 4,
        "opt_window_size": 2,
        "estimate_extrinsic": 1,
        "optimal_extrinsic": 0,
        "body_T_laser": np.array(
            [
                [0.0, 0.0, 0.0, 1.0, 0.1, 0.2, 0.3],
                [0.0, 0.0, 0.7071067811865476, 0.7071067811865476, 0.0, -0.5, -0.1],
            ],
            dtype=np.float64,
        )[:num_of_laser],
        "td": np.array([0.01, -0.02], dtype=np.float64)[:num_of_laser],
        "estimate_td": 0,
        "laser_sync_threshold": 0.07,
        "n_scans": 16,
        "roi_range": 0.5,
        "roi_range_mapping": 2.0,
        "segment_cloud": 1,
        "horizon_scan": 1800,
        "min_cluster_size": 30,
        "min_line_size": 4,
        "segment_valid_point_num": 5,
        "segment_valid_line_num": 3,
        "segment_theta": 0.5326,
        "idx_ref": 0,
        "scan_period": 0.1,
        "distance_sq_threshold": 25.0,
        "nearby_scan": 2.5,
        "planar_movement": 0,
        "min_match_sq_dis": 1.0,
        "min_plane_dis": 0.2,
        "marginalization_factor": 1,
        "point_plane_factor": 1,
        "point_edge_factor": 1,
        "prior_factor": 0,
        "prior_factor_pos": 5.0,
        "prior_factor_rot": 40.0,
        "check_jacobian": 0,
        "evaluate_residual": 1,
        "pcl_viewer": 0,
        "pcl_viewer_normal_ratio": 10,
        "optimal_odometry": 1,
        "n_cumu_feature": 20,
        "eig_initial": 150.0,
        "eig_thre_calib": 150.0,
        "n_calib": 25,
        "uncertainty_calib": np.array(
            [1.0, 1.0, 1.0, 0.1, 0.1, 0.1, 0.01, 0.01, 0.01], dtype=np.float64
        ),
        "norm_threshold": 0.2,
        "map_corner_res": 0.2,
        "map_surf_res": 0.4,
    }
    if num_of_laser < 2:
        del values["cloud1_topic"]
    return values


@pytest.fixture
def settings_values() -> dict[str, Any]:
    """Valid settings for two LiDARs."""
    return make_settings(num_of_laser=2)


@pytest.fixture
def settings_factory() -> Callable[[int], dict[str, Any]]:
    """Return a builder of valid settings for a given LiDAR count."""
    return make_settings


@pytest.fixture
def write_settings(tmp_path: Path) -> SettingsWriter:
    """Return a function that writes a settings mapping to a YAML file."""
    counter: list[int] = [0]

    def _write(values: dict[str, Any]) -> Path:
        counter[0] += 1
        path: Path = tmp_path / f"settings_{counter[0]}.yaml"
        path.write_text(dumps_settings(values), encoding="utf-8")
        return path

    return _write
