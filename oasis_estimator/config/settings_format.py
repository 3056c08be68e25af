################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Reader and writer for estimator settings documents.

Settings files use the OpenCV FileStorage flavour of YAML:

    %YAML:1.0
    ---
    num_of_laser: 2
    body_T_laser: !!opencv-matrix
       rows: 2
       cols: 7
       dt: d
       data: [0, 0, 0, 1, 0, 0, 0,
              0, 0, 0, 1, 0, 0, 0]

The "%YAML:1.0" directive is not valid YAML 1.1, so it is stripped before
handing the text to PyYAML. Matrix nodes are kept as OpenCvMatrix values and
only validated when a key is read, so errors can name the offending key.
"""

from __future__ import annotations

import logging
import math
import numbers
import re
from dataclasses import dataclass
from typing import Any
from typing import Mapping
from typing import Sequence

import numpy as np
import yaml
from numpy.typing import NDArray

from .config_errors import DOCUMENT_KEY
from .config_errors import SchemaViolationError


_LOG: logging.Logger = logging.getLogger(__name__)


# Header written by OpenCV FileStorage
OPENCV_YAML_DIRECTIVE: str = "%YAML:1.0"
# Full YAML tag of OpenCV matrix nodes ("!!opencv-matrix" in files)
OPENCV_MATRIX_TAG: str = "tag:yaml.org,2002:opencv-matrix"
# OpenCV element type for float64 data
OPENCV_DT_DOUBLE: str = "d"


@dataclass(frozen=True)
class OpenCvMatrix:
    """Raw "!!opencv-matrix" node as found in the document.

    Attributes:
        rows: Declared row count
        cols: Declared column count
        dt: OpenCV element type code
        data: Row-major element list
    """

    rows: Any
    cols: Any
    dt: Any
    data: Any


class SettingsLoader(yaml.SafeLoader):
    """Safe YAML loader that understands OpenCV matrix nodes."""


def _construct_opencv_matrix(
    loader: SettingsLoader, node: yaml.Node
) -> OpenCvMatrix:
    if not isinstance(node, yaml.MappingNode):
        # Rejected with the key name when the value is read
        return OpenCvMatrix(rows=None, cols=None, dt=None, data=None)
    mapping: dict[Any, Any] = loader.construct_mapping(node, deep=True)
    return OpenCvMatrix(
        rows=mapping.get("rows"),
        cols=mapping.get("cols"),
        dt=mapping.get("dt"),
        data=mapping.get("data"),
    )


SettingsLoader.add_constructor(OPENCV_MATRIX_TAG, _construct_opencv_matrix)

# YAML 1.1 reads "1e-3" as a string; OpenCV and hand-written files use it
SettingsLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(r"^[-+]?[0-9][0-9_]*(?:\.[0-9_]*)?[eE][-+]?[0-9]+$"),
    list("-+0123456789"),
)


def strip_opencv_directive(text: str) -> str:
    """Remove the OpenCV "%YAML:1.0" header line if present."""
    stripped: str = text.lstrip("\ufeff")
    if stripped.startswith("%YAML:"):
        newline: int = stripped.find("\n")
        return "" if newline < 0 else stripped[newline + 1 :]
    return stripped


def loads_settings(text: str) -> SettingsDocument:
    """Parse settings text into a SettingsDocument."""
    try:
        loaded: Any = yaml.load(strip_opencv_directive(text), Loader=SettingsLoader)
    except yaml.YAMLError as exc:
        _LOG.error("Settings document is not valid YAML: %s", exc)
        raise SchemaViolationError(DOCUMENT_KEY, f"invalid YAML: {exc}") from exc

    if not isinstance(loaded, dict):
        _LOG.error("Settings document root must be a mapping")
        raise SchemaViolationError(DOCUMENT_KEY, "root must be a mapping")

    return SettingsDocument(values={str(key): value for key, value in loaded.items()})


@dataclass(frozen=True)
class SettingsDocument:
    """Typed, key-by-key access to a parsed settings mapping.

    Every accessor raises SchemaViolationError naming the key when the key is
    missing or its value has the wrong type or shape.
    """

    values: Mapping[str, Any]

    def has(self, key: str) -> bool:
        """Return True if the key is present."""
        return key in self.values

    def require(self, key: str) -> Any:
        """Return the raw value of a required key."""
        if key not in self.values:
            raise _violation(key, "required key is missing")
        return self.values[key]

    def require_str(self, key: str) -> str:
        """Return a required string value."""
        value: Any = self.require(key)
        if not isinstance(value, str):
            raise _violation(key, "must be a string")
        _LOG.info("Loaded %s: %s", key, value)
        return value

    def require_int(self, key: str) -> int:
        """Return a required integer value."""
        value: Any = self.require(key)
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise _violation(key, "must be an integer")
        _LOG.info("Loaded %s: %d", key, value)
        return int(value)

    def require_float(self, key: str) -> float:
        """Return a required finite real value."""
        value: Any = self.require(key)
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise _violation(key, "must be a number")
        result: float = float(value)
        if not math.isfinite(result):
            raise _violation(key, "must be finite")
        _LOG.info("Loaded %s: %s", key, result)
        return result

    def require_flag(self, key: str) -> bool:
        """Return a required on/off switch stored as 0/1 or a boolean."""
        value: Any = self.require(key)
        if isinstance(value, bool):
            result: bool = value
        elif isinstance(value, numbers.Integral) and int(value) in (0, 1):
            result = bool(value)
        else:
            raise _violation(key, "must be 0, 1, true or false")
        _LOG.info("Loaded %s: %s", key, result)
        return result

    def require_matrix(
        self, key: str, rows: int | None = None, cols: int | None = None
    ) -> NDArray[np.float64]:
        """Return a required 2D matrix, optionally checking its dimensions."""
        matrix: NDArray[np.float64] = _as_matrix(self.require(key), key)
        if rows is not None and matrix.shape[0] != rows:
            raise _violation(key, f"must have {rows} rows, got {matrix.shape[0]}")
        if cols is not None and matrix.shape[1] != cols:
            raise _violation(key, f"must have {cols} columns, got {matrix.shape[1]}")
        _LOG.info("Loaded %s: %s", key, matrix.tolist())
        return matrix

    def require_row(self, key: str, length: int) -> NDArray[np.float64]:
        """Return a required vector of exactly length values.

        Accepts a flat list, a single-row matrix or a single-column matrix.
        """
        value: Any = self.require(key)
        array: NDArray[np.float64]
        if isinstance(value, OpenCvMatrix):
            array = _as_matrix(value, key)
        else:
            array = _as_numeric_array(value, key)
        if array.ndim == 2 and 1 in array.shape:
            array = array.reshape(-1)
        if array.shape != (length,):
            raise _violation(key, f"must hold exactly {length} values")
        _LOG.info("Loaded %s: %s", key, array.tolist())
        return array


def dumps_settings(values: Mapping[str, Any]) -> str:
    """Serialize a settings mapping in OpenCV FileStorage YAML.

    Strings, integers, booleans (as 0/1) and floats are written as scalars.
    Sequences and numpy arrays are written as "!!opencv-matrix" nodes; 1D
    inputs become a single row.
    """
    lines: list[str] = [OPENCV_YAML_DIRECTIVE, "---"]
    for key, value in values.items():
        if isinstance(value, (np.ndarray, list, tuple)):
            lines.extend(_format_matrix(key, value))
        else:
            lines.append(f"{key}: {_format_scalar(key, value)}")
    return "\n".join(lines) + "\n"


def _violation(key: str, reason: str) -> SchemaViolationError:
    _LOG.error("Failed to load %s: %s", key, reason)
    return SchemaViolationError(key, reason)


def _as_numeric_array(value: Any, key: str) -> NDArray[np.float64]:
    """Convert a (possibly nested) list of real numbers to a float array."""
    if not isinstance(value, (list, tuple)):
        raise _violation(key, "must be a matrix or a list of numbers")
    raw: NDArray[Any] = np.asarray(value, dtype=object)
    for item in raw.reshape(-1):
        if isinstance(item, bool) or not isinstance(item, numbers.Real):
            raise _violation(key, "must contain only numbers in a rectangular layout")
    array: NDArray[np.float64] = raw.astype(np.float64)
    if not np.all(np.isfinite(array)):
        raise _violation(key, "must contain finite values")
    return array


def _as_matrix(value: Any, key: str) -> NDArray[np.float64]:
    """Convert a matrix node or nested list to a 2D float array."""
    if isinstance(value, OpenCvMatrix):
        rows: Any = value.rows
        cols: Any = value.cols
        for name, dim in (("rows", rows), ("cols", cols)):
            if isinstance(dim, bool) or not isinstance(dim, numbers.Integral):
                raise _violation(key, f"matrix {name} must be an integer")
            if dim < 0:
                raise _violation(key, f"matrix {name} must be non-negative")
        data: NDArray[np.float64] = _as_numeric_array(value.data, key).reshape(-1)
        if data.size != rows * cols:
            raise _violation(
                key, f"matrix data has {data.size} values, expected {rows * cols}"
            )
        return data.reshape((int(rows), int(cols)))

    array: NDArray[np.float64] = _as_numeric_array(value, key)
    if array.ndim != 2:
        raise _violation(key, "must be a matrix")
    return array


# Characters that must be escaped inside a double-quoted YAML scalar
_DOUBLE_QUOTED_ESCAPES: dict[int, str] = str.maketrans(
    {
        "\\": "\\\\",
        '"': '\\"',
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
    }
)


def _format_scalar(key: str, value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, str):
        return f'"{value.translate(_DOUBLE_QUOTED_ESCAPES)}"'
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        return _format_float(float(value))
    raise ValueError(f"{key}: unsupported settings value type {type(value).__name__}")


def _format_float(value: float) -> str:
    if math.isnan(value):
        return ".nan"
    if math.isinf(value):
        return ".inf" if value > 0.0 else "-.inf"
    # repr() round-trips exactly and always contains "." or "e"
    return repr(value)


def _format_matrix(key: str, value: Sequence[Any] | NDArray[Any]) -> list[str]:
    array: NDArray[np.float64] = np.asarray(value, dtype=np.float64)
    if array.ndim == 1:
        array = array.reshape((1, -1))
    if array.ndim != 2:
        raise ValueError(f"{key}: only 1D and 2D arrays can be serialized")
    data: str = ", ".join(_format_float(float(item)) for item in array.reshape(-1))
    return [
        f"{key}: !!opencv-matrix",
        f"   rows: {array.shape[0]}",
        f"   cols: {array.shape[1]}",
        f"   dt: {OPENCV_DT_DOUBLE}",
        f"   data: [{data}]",
    ]
