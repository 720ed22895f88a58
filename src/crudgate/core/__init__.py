"""Core utilities for the crudgate translation engine."""

from crudgate.core.errors import (
    CoercionError,
    ConfigError,
    GateError,
    InvalidParameterError,
    MethodNotAllowed,
    OperationNotConfigured,
    PersistenceError,
    SchemaError,
)
from crudgate.core.logging import Logger, color_palette, log

__all__ = [
    "CoercionError",
    "ConfigError",
    "GateError",
    "InvalidParameterError",
    "Logger",
    "MethodNotAllowed",
    "OperationNotConfigured",
    "PersistenceError",
    "SchemaError",
    "color_palette",
    "log",
]
