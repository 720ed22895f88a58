"""
Column types and string-to-value coercion.

Every query-string value reaches the gate as text.  This module decides which
scalar type a storage column holds (`get_eq_type`) and converts raw strings
into that type (`coerce` / `coerce_many`).
"""

import math
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple, Union

from crudgate.core.errors import CoercionError


class ColumnType(str, Enum):
    """Scalar types a storage column can declare."""

    STRING = "string"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    BOOL = "bool"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    TIMESTAMP = "timestamp"
    BYTES = "bytes"

    def __str__(self) -> str:
        return self.value

    @property
    def is_integer(self) -> bool:
        return self in INT_RANGES


INT_RANGES: Dict[ColumnType, Tuple[int, int]] = {
    ColumnType.INT8: (-(2**7), 2**7 - 1),
    ColumnType.INT16: (-(2**15), 2**15 - 1),
    ColumnType.INT32: (-(2**31), 2**31 - 1),
    ColumnType.INT64: (-(2**63), 2**63 - 1),
    ColumnType.UINT8: (0, 2**8 - 1),
    ColumnType.UINT16: (0, 2**16 - 1),
    ColumnType.UINT32: (0, 2**32 - 1),
    ColumnType.UINT64: (0, 2**64 - 1),
}

FLOAT32_MAX = 3.4028234663852886e38

TRUE_LITERALS = frozenset({"1", "t", "T", "true", "TRUE", "True"})
FALSE_LITERALS = frozenset({"0", "f", "F", "false", "FALSE", "False"})

# Tried in order after ISO 8601 / RFC 3339; the first layout that parses wins.
# Month-first precedes day-first, so "03/04/2024" reads as March 4th.
TIMESTAMP_LAYOUTS: List[str] = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y",
    "%Y%m%d%H%M%S",
    "%Y%m%d",
]

INT_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)

# SQL type name (as rendered by SQLAlchemy) -> column type.  Checked in order,
# so the more specific names come first.
_SQL_TYPE_PATTERNS: List[Tuple[re.Pattern, ColumnType]] = [
    (re.compile(r"^(BIGINT|INT8|BIGSERIAL|SERIAL8)"), ColumnType.INT64),
    (re.compile(r"^(SMALLINT|INT2|SMALLSERIAL|SERIAL2)"), ColumnType.INT16),
    (re.compile(r"^TINYINT"), ColumnType.INT8),
    (re.compile(r"^(MEDIUMINT|INTEGER|INT4|INT|SERIAL4|SERIAL)\b"), ColumnType.INT32),
    (re.compile(r"^(BOOLEAN|BOOL)\b"), ColumnType.BOOL),
    (re.compile(r"^(REAL|FLOAT4)\b"), ColumnType.FLOAT32),
    (re.compile(r"^(DOUBLE|FLOAT8|FLOAT|NUMERIC|DECIMAL|MONEY)"), ColumnType.FLOAT64),
    (re.compile(r"^(TIMESTAMP|DATETIME|DATE)"), ColumnType.TIMESTAMP),
    (re.compile(r"^(BYTEA|BLOB|TINYBLOB|MEDIUMBLOB|LONGBLOB|BINARY|VARBINARY|LARGEBINARY)"), ColumnType.BYTES),
    (re.compile(r"^(VARCHAR|CHAR|TEXT|NVARCHAR|NCHAR|CLOB|STRING|UUID|CITEXT|ENUM)"), ColumnType.STRING),
]

_UNSIGNED = {
    ColumnType.INT8: ColumnType.UINT8,
    ColumnType.INT16: ColumnType.UINT16,
    ColumnType.INT32: ColumnType.UINT32,
    ColumnType.INT64: ColumnType.UINT64,
}


def get_eq_type(sql_type: str) -> ColumnType:
    """
    Map a SQL type name to its equivalent column type.

    Unrecognized type names map to STRING so that values are passed through
    untouched instead of being rejected.
    """
    name = sql_type.strip().upper()
    for pattern, column_type in _SQL_TYPE_PATTERNS:
        if pattern.match(name):
            if column_type in _UNSIGNED and "UNSIGNED" in name:
                return _UNSIGNED[column_type]
            return column_type
    return ColumnType.STRING


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp using the first layout that accepts it."""
    text = value.strip()
    # RFC 3339 / ISO 8601 with an extended (dashed) date; compact digit
    # strings are left to the explicit layouts below.
    if len(text) >= 10 and text[4] == "-":
        try:
            return datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
        except ValueError:
            pass
    for layout in TIMESTAMP_LAYOUTS:
        try:
            return datetime.strptime(text, layout)
        except ValueError:
            continue
    raise CoercionError(value, ColumnType.TIMESTAMP, "no known timestamp layout matches")


def _coerce_int(column_type: ColumnType, value: str) -> int:
    text = value.strip()
    if not INT_PATTERN.fullmatch(text):
        raise CoercionError(value, column_type, "not an integer")
    number = int(text)
    low, high = INT_RANGES[column_type]
    if not low <= number <= high:
        raise CoercionError(value, column_type, f"out of range [{low}, {high}]")
    return number


def _coerce_float(column_type: ColumnType, value: str) -> float:
    try:
        number = float(value.strip())
    except ValueError as e:
        raise CoercionError(value, column_type, "not a decimal number") from e
    if column_type == ColumnType.FLOAT32 and math.isfinite(number) and abs(number) > FLOAT32_MAX:
        raise CoercionError(value, column_type, "out of float32 range")
    return number


def _coerce_bool(value: str) -> bool:
    if value in TRUE_LITERALS:
        return True
    if value in FALSE_LITERALS:
        return False
    raise CoercionError(value, ColumnType.BOOL, "not a boolean literal")


def coerce(column_type: Union[ColumnType, str], value: str) -> Any:
    """
    Convert one raw string to the scalar type a column declares.

    Raises:
        CoercionError: if the string is not a valid literal for the type
    """
    if not isinstance(column_type, ColumnType):
        try:
            column_type = ColumnType(column_type)
        except ValueError:
            return value

    if column_type.is_integer:
        return _coerce_int(column_type, value)
    if column_type in (ColumnType.FLOAT32, ColumnType.FLOAT64):
        return _coerce_float(column_type, value)
    if column_type == ColumnType.BOOL:
        return _coerce_bool(value)
    if column_type == ColumnType.TIMESTAMP:
        return parse_timestamp(value)
    if column_type == ColumnType.BYTES:
        return value.encode("utf-8")
    return value


def coerce_many(column_type: Union[ColumnType, str], values: Sequence[str]) -> Any:
    """
    Convert a list of raw strings.

    A single string yields a bare scalar, never a one-element list.
    """
    converted = [coerce(column_type, value) for value in values]
    if len(converted) == 1:
        return converted[0]
    return converted


def coerce_json_value(column_type: ColumnType, value: Any) -> Any:
    """
    Normalize a value decoded from a JSON body for storage.

    JSON already carries numbers and booleans, so only strings aimed at
    non-string columns go through `coerce`.
    """
    if value is None or not isinstance(value, str):
        return value
    if column_type == ColumnType.STRING:
        return value
    return coerce(column_type, value)
