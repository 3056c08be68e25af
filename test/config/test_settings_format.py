################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for the OpenCV-flavoured settings format."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.typing import NDArray

from oasis_estimator.config.config_errors import DOCUMENT_KEY
from oasis_estimator.config.config_errors import SchemaViolationError
from oasis_estimator.config.settings_format import SettingsDocument
from oasis_estimator.config.settings_format import dumps_settings
from oasis_estimator.config.settings_format import loads_settings
from oasis_estimator.config.settings_format import strip_opencv_directive


OPENCV_TEXT: str = """%YAML:1.0
---
cloud0_topic: "/velodyne_points"
num_of_laser: 1
eig_initial: 1e2
min_plane_dis: 2.0e-1
segment_cloud: 1
body_T_laser: !!opencv-matrix
   rows: 1
   cols: 7
   dt: d
   data: [ 0., 0., 0., 1., 0.5, 0., -0.25 ]
td: !!opencv-matrix
   rows: 1
   cols: 1
   dt: d
   data: [ 0.002 ]
"""


def test_strip_directive() -> None:
    """The OpenCV header line is removed, other text is untouched."""
    assert strip_opencv_directive("%YAML:1.0\na: 1\n") == "a: 1\n"
    assert strip_opencv_directive("a: 1\n") == "a: 1\n"


def test_parse_opencv_document() -> None:
    """Scalars, exponent floats and matrix nodes are read."""
    settings: SettingsDocument = loads_settings(OPENCV_TEXT)

    assert settings.require_str("cloud0_topic") == "/velodyne_points"
    assert settings.require_int("num_of_laser") == 1
    assert settings.require_float("eig_initial") == 100.0
    assert settings.require_float("min_plane_dis") == pytest.approx(0.2)
    assert settings.require_flag("segment_cloud") is True

    matrix: NDArray[np.float64] = settings.require_matrix(
        "body_T_laser", rows=1, cols=7
    )
    assert matrix.shape == (1, 7)
    assert matrix[0, 4] == 0.5
    assert np.array_equal(settings.require_row("td", 1), np.array([0.002]))


def test_plain_lists_are_matrices() -> None:
    """Nested YAML lists work where a matrix node is expected."""
    settings: SettingsDocument = loads_settings(
        "m: [[1, 2, 3], [4, 5, 6]]\nv: [1, 2, 3]\nc: [[1], [2], [3]]\n"
    )
    assert settings.require_matrix("m", rows=2, cols=3).tolist() == [
        [1.0, 2.0, 3.0],
        [4.0, 5.0, 6.0],
    ]
    assert settings.require_row("v", 3).tolist() == [1.0, 2.0, 3.0]
    assert settings.require_row("c", 3).tolist() == [1.0, 2.0, 3.0]


def test_missing_key_names_key() -> None:
    """A missing key raises a violation naming the key."""
    settings: SettingsDocument = loads_settings("a: 1\n")
    with pytest.raises(SchemaViolationError) as excinfo:
        settings.require_int("window_size")
    assert excinfo.value.key == "window_size"


@pytest.mark.parametrize(
    "text, method",
    [
        ("k: 1.5\n", "require_int"),
        ("k: true\n", "require_int"),
        ("k: abc\n", "require_float"),
        ("k: .nan\n", "require_float"),
        ("k: 2\n", "require_flag"),
        ("k: 3\n", "require_str"),
        ("k: 1.0\n", "require_matrix"),
        ("k: [[1, 2], [3]]\n", "require_matrix"),
        ("k: [1, x]\n", "require_matrix"),
    ],
)
def test_wrong_types_rejected(text: str, method: str) -> None:
    """Values of the wrong type raise a violation naming the key."""
    settings: SettingsDocument = loads_settings(text)
    with pytest.raises(SchemaViolationError) as excinfo:
        getattr(settings, method)("k")
    assert excinfo.value.key == "k"


def test_matrix_dimension_checks() -> None:
    """Row and column counts are enforced, as is the declared data size."""
    settings: SettingsDocument = loads_settings(
        "k: !!opencv-matrix\n   rows: 2\n   cols: 7\n   dt: d\n"
        "   data: [0, 0, 0, 1, 0, 0, 0]\n"
    )
    with pytest.raises(SchemaViolationError):
        settings.require_matrix("k")

    settings = loads_settings("k: [[0, 0, 0, 1, 0, 0]]\n")
    with pytest.raises(SchemaViolationError):
        settings.require_matrix("k", rows=1, cols=7)
    with pytest.raises(SchemaViolationError):
        settings.require_matrix("k", rows=2, cols=6)


@pytest.mark.parametrize(
    "text",
    [
        "body_T_laser: !!opencv-matrix 5\n",
        "body_T_laser: !!opencv-matrix [0, 0, 0, 1, 0, 0, 0]\n",
    ],
)
def test_matrix_tag_on_non_mapping_names_key(text: str) -> None:
    """A matrix tag on a scalar or sequence is reported under its key."""
    settings: SettingsDocument = loads_settings(text)
    with pytest.raises(SchemaViolationError) as excinfo:
        settings.require_matrix("body_T_laser", rows=1, cols=7)
    assert excinfo.value.key == "body_T_laser"
    with pytest.raises(SchemaViolationError) as excinfo:
        settings.require_row("body_T_laser", 7)
    assert excinfo.value.key == "body_T_laser"


def test_row_length_checked() -> None:
    """A row with the wrong number of values is rejected."""
    settings: SettingsDocument = loads_settings("td: [0.0, 0.0, 0.0]\n")
    with pytest.raises(SchemaViolationError) as excinfo:
        settings.require_row("td", 2)
    assert excinfo.value.key == "td"


@pytest.mark.parametrize("text", ["- 1\n- 2\n", "a: [1\n", ""])
def test_bad_document_rejected(text: str) -> None:
    """Non-mapping roots and invalid YAML are document-level violations."""
    with pytest.raises(SchemaViolationError) as excinfo:
        loads_settings(text)
    assert excinfo.value.key == DOCUMENT_KEY


def test_dumps_is_readable() -> None:
    """Serialized settings parse back to the same values."""
    text: str = dumps_settings(
        {
            "topic": 'say "hi"',
            "count": 2,
            "enabled": True,
            "small": 1e-05,
            "matrix": np.array([[1.0, 2.0], [3.0, 4.0]]),
            "row": [0.1, 0.2, 0.3],
        }
    )
    assert text.startswith("%YAML:1.0\n")

    settings: SettingsDocument = loads_settings(text)
    assert settings.require_str("topic") == 'say "hi"'
    assert settings.require_int("count") == 2
    assert settings.require_flag("enabled") is True
    assert settings.require_float("small") == 1e-05
    assert settings.require_matrix("matrix", rows=2, cols=2).tolist() == [
        [1.0, 2.0],
        [3.0, 4.0],
    ]
    assert settings.require_row("row", 3).tolist() == [0.1, 0.2, 0.3]


def test_dumps_escapes_control_characters() -> None:
    """Newlines, tabs, quotes and backslashes in strings survive a write."""
    value: str = 'line one\nline\ttwo "quoted" C:\\path\r'
    settings: SettingsDocument = loads_settings(dumps_settings({"topic": value}))
    assert settings.require_str("topic") == value


def test_dumps_rejects_unsupported_values() -> None:
    """Values with no settings representation are rejected."""
    with pytest.raises(ValueError):
        dumps_settings({"k": {"nested": 1}})
