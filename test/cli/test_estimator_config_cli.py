################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for the estimator settings check CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from typing import Callable

import pytest
import yaml

from oasis_estimator.cli.estimator_config_cli import main


SettingsWriter = Callable[[dict[str, Any]], Path]


def test_dump_prints_resolved_config(
    settings_values: dict[str, Any],
    write_settings: SettingsWriter,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """--dump prints the loaded configuration as YAML."""
    main([str(write_settings(settings_values)), "--dump", "--log-level", "ERROR"])

    dumped: dict[str, Any] = yaml.safe_load(capsys.readouterr().out)
    assert dumped["lasers"]["num_of_laser"] == 2
    assert dumped["output"]["odom_path"] == "/data/run1/odom.csv"
    assert dumped["calibration"]["estimate_extrinsic"] == "refine"


def test_quiet_without_dump(
    settings_values: dict[str, Any],
    write_settings: SettingsWriter,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Without --dump a valid file prints nothing on stdout."""
    main([str(write_settings(settings_values)), "--log-level", "ERROR"])
    assert capsys.readouterr().out == ""


def test_invalid_file_exits(
    settings_values: dict[str, Any], write_settings: SettingsWriter
) -> None:
    """A failing load exits with the error message."""
    settings_values["num_of_laser"] = 3
    with pytest.raises(SystemExit) as excinfo:
        main([str(write_settings(settings_values)), "--log-level", "ERROR"])
    assert "num_of_laser" in str(excinfo.value.code)


def test_missing_file_exits(tmp_path: Path) -> None:
    """A missing file exits instead of raising a traceback."""
    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path / "missing.yaml"), "--log-level", "ERROR"])
    assert str(excinfo.value.code).startswith("Error:")
