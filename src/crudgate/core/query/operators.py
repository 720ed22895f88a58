# src/crudgate/core/query/operators.py
from enum import Enum


class Operator(str, Enum):
    """Comparison operators a query key can carry as its `_suffix`."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    IN = "in"
    NOT_IN = "notIn"
    IS_NULL = "isNull"
    IS_NOT_NULL = "isNotNull"
    BETWEEN = "between"
    NOT_BETWEEN = "notBetween"
    LIKE = "like"
    NOT_LIKE = "notLike"

    def __str__(self) -> str:
        return self.value


# Maps each operator to the SQLAlchemy column method implementing it.
# For example, `?age_ge=18` calls `Column.__ge__(18)`.
OPERATOR_MAP = {
    Operator.EQ: "__eq__",
    Operator.NE: "__ne__",
    Operator.GT: "__gt__",
    Operator.GE: "__ge__",
    Operator.LT: "__lt__",
    Operator.LE: "__le__",
    Operator.IN: "in_",
    Operator.NOT_IN: "not_in",
    Operator.IS_NULL: "is_",
    Operator.IS_NOT_NULL: "is_not",
    Operator.BETWEEN: "between",
    Operator.NOT_BETWEEN: "between",
    Operator.LIKE: "like",
    Operator.NOT_LIKE: "not_like",
}

# Operators whose value is a comma-separated list.
LIST_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN, Operator.BETWEEN, Operator.NOT_BETWEEN})

# Operators that take no value at all.
NULL_OPERATORS = frozenset({Operator.IS_NULL, Operator.IS_NOT_NULL})

RANGE_OPERATORS = frozenset({Operator.BETWEEN, Operator.NOT_BETWEEN})

SUFFIXES = {op.value: op for op in Operator}


def lookup_operator(suffix: str) -> Operator | None:
    return SUFFIXES.get(suffix)
