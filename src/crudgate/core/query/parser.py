# src/crudgate/core/query/parser.py
"""
Query-string parsing.

Grammar: ``field_op=value[,value...]`` with the reserved keys ``page``,
``pageSize``, ``orderBy`` and ``orderByDesc``.  Keys are split on their last
underscore; the field part is translated to its storage name and typed
through the column catalog, and the value is coerced to that type.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from crudgate.core.errors import CoercionError, InvalidParameterError
from crudgate.core.introspection.catalog import ColumnDescriptor
from crudgate.core.logging import color_palette, log
from crudgate.core.translate import FieldTranslator
from crudgate.core.types import INT_PATTERN, coerce, coerce_many

from .models import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE_VALUE, Condition, QueryRequest
from .operators import LIST_OPERATORS, NULL_OPERATORS, RANGE_OPERATORS, Operator, lookup_operator

PAGE_KEY = "page"
PAGE_SIZE_KEY = "pageSize"
ORDER_BY_KEY = "orderBy"
ORDER_BY_DESC_KEY = "orderByDesc"

QueryItems = Union[Mapping[str, Any], Iterable[Tuple[str, str]]]


def split_key(key: str) -> Tuple[str, Optional[Operator]]:
    """
    Split ``field_op`` on its last underscore.

    Returns the field part and the operator, or the whole key and None when
    there is no underscore or the suffix is not a known operator.
    """
    head, sep, suffix = key.rpartition("_")
    if not sep or not head:
        return key, None
    op = lookup_operator(suffix)
    if op is None:
        return key, None
    return head, op


def split_values(values: Iterable[str]) -> List[str]:
    """Flatten repeated values and comma-separated lists into one list."""
    parts: List[str] = []
    for value in values:
        parts.extend(value.split(","))
    return parts


def group_items(items: QueryItems) -> Dict[str, List[str]]:
    """Collect query items into key -> values, keeping first-seen key order."""
    if hasattr(items, "multi_items"):
        pairs = items.multi_items()
    elif isinstance(items, Mapping):
        pairs = []
        for key, value in items.items():
            if isinstance(value, (list, tuple)):
                pairs.extend((key, str(v)) for v in value)
            else:
                pairs.append((key, str(value)))
    else:
        pairs = list(items)

    grouped: Dict[str, List[str]] = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)
    return grouped


class QueryParser:
    """Builds a `QueryRequest` for one relation from raw query parameters."""

    def __init__(
        self,
        table: str,
        translator: FieldTranslator,
        columns: Mapping[str, ColumnDescriptor],
        strict: bool = False,
    ):
        self.table = table
        self.translator = translator
        self.columns = columns
        # When strict, a malformed condition value fails the request instead of being dropped.
        self.strict = strict

    def parse(self, items: QueryItems) -> QueryRequest:
        """
        Parse raw query parameters.

        Raises:
            InvalidParameterError: if `page` or `pageSize` is not an integer,
                or (strict mode only) a condition value cannot be coerced
        """
        page, page_size = DEFAULT_PAGE, DEFAULT_PAGE_SIZE
        order_by: List[str] = []
        order_by_desc: List[str] = []
        conditions: List[Condition] = []

        for key, values in group_items(items).items():
            if key == PAGE_KEY:
                page = self._parse_int(key, values[0], DEFAULT_PAGE)
            elif key == PAGE_SIZE_KEY:
                page_size = self._parse_int(key, values[0], DEFAULT_PAGE_SIZE)
            elif key == ORDER_BY_KEY:
                order_by.extend(self._order_fields(values))
            elif key == ORDER_BY_DESC_KEY:
                order_by_desc.extend(self._order_fields(values))
            else:
                condition = self.parse_condition(key, values)
                if condition is not None:
                    conditions.append(condition)

        return QueryRequest(
            table=self.table,
            conditions=conditions,
            page=page,
            page_size=page_size,
            order_by=order_by,
            order_by_desc=order_by_desc,
        )

    def parse_condition(self, key: str, values: List[str]) -> Optional[Condition]:
        """Parse one ``field_op`` key; returns None when the condition is dropped."""
        field, op = self._resolve_field(key)
        column = self.columns.get(field)
        if column is None:
            log.debug(f"Ignoring unknown query field {color_palette['field'](key)} on {self.table}")
            return None

        try:
            value = self._coerce_values(column, op, values)
        except CoercionError as e:
            if self.strict:
                raise InvalidParameterError(f"invalid value for '{key}': {e.message}") from e
            log.warn(f"Dropping condition {color_palette['field'](key)}: {e.message}")
            return None

        return Condition(field=field, op=op, value=value)

    def _resolve_field(self, key: str) -> Tuple[str, Operator]:
        field, op = split_key(key)
        if op is not None:
            return self.translator.field_to_storage(field), op

        # No recognized suffix: the whole key may be a column such as
        # `created_at`; otherwise fall back to the part before the underscore.
        storage = self.translator.field_to_storage(key)
        if storage not in self.columns and "_" in key:
            storage = self.translator.field_to_storage(key.rpartition("_")[0])
        return storage, Operator.EQ

    @staticmethod
    def _coerce_values(column: ColumnDescriptor, op: Operator, values: List[str]) -> Any:
        if op in NULL_OPERATORS:
            return None

        if op not in LIST_OPERATORS:
            # Scalar operators keep commas as part of the literal.
            return coerce(column.declared_type, values[0])

        parts = split_values(values)
        if op in RANGE_OPERATORS and len(parts) != 2:
            raise CoercionError(",".join(values), column.declared_type, f"{op} expects exactly 2 values")
        # One element stays a bare scalar, also for `in`; the builder wraps it.
        return coerce_many(column.declared_type, parts)

    def _order_fields(self, values: List[str]) -> List[str]:
        fields = []
        for name in split_values(values):
            name = name.strip()
            if not name:
                continue
            storage = self.translator.field_to_storage(name)
            if storage not in self.columns:
                log.debug(f"Ignoring unknown sort field {color_palette['field'](name)} on {self.table}")
                continue
            fields.append(storage)
        return fields

    @staticmethod
    def _parse_int(key: str, raw: str, default: int) -> int:
        """Parse `page` / `pageSize`; values below 1 fall back to `default`, large ones are capped."""
        text = raw.strip()
        if not INT_PATTERN.fullmatch(text):
            raise InvalidParameterError(f"'{key}' must be an integer, got {raw!r}")
        number = int(text)
        if number < 1:
            return default
        return min(number, MAX_PAGE_VALUE)
