"""Error taxonomy shared by every layer of the gate."""

from typing import Any


class GateError(Exception):
    """Base class for all errors raised by crudgate."""

    status_code: int = 200

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(GateError):
    """Invalid or inconsistent service configuration."""


class SchemaError(GateError):
    """Column metadata for a relation is unavailable or unusable."""


class InvalidParameterError(GateError):
    """A request parameter breaks the result-shape guarantees (page, pageSize, body)."""


class CoercionError(GateError):
    """A raw string could not be converted to the declared column type."""

    def __init__(self, value: Any, target_type: Any, reason: str = ""):
        self.value = value
        self.target_type = target_type
        detail = f": {reason}" if reason else ""
        super().__init__(f"cannot coerce {value!r} to {target_type}{detail}")


class PersistenceError(GateError):
    """The row store rejected or failed an operation."""


class OperationNotConfigured(GateError):
    """No handler (or no enabled operation) matches the requested path."""

    status_code = 404


class MethodNotAllowed(GateError):
    """The operation exists but was requested with the wrong HTTP verb."""

    status_code = 405
