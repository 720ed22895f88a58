# src/crudgate/api/executor.py
"""Row-store operations behind each gate endpoint."""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from crudgate.core.errors import CoercionError, InvalidParameterError, SchemaError
from crudgate.core.introspection.catalog import ColumnDescriptor
from crudgate.core.logging import color_palette, log
from crudgate.core.query.models import Condition, PageResult, QueryRequest
from crudgate.core.query.operators import Operator
from crudgate.core.translate import FieldTranslator
from crudgate.core.types import ColumnType, coerce_json_value
from crudgate.db.store import RowStore

CREATE_TIME_COLUMNS = frozenset({"create_at", "created_at", "creation_time", "create_time"})
UPDATE_TIME_COLUMNS = frozenset({"update_at", "updated_at", "update_time", "modification_time", "modified_at"})


def is_significant(value: Any) -> bool:
    """
    Tell a real key value from "no value supplied".

    None, the empty string and numeric zero all count as absent.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return value != 0
    return True


class OperationExecutor:
    """Runs exactly one row-store operation per call for a single relation."""

    def __init__(
        self,
        store: RowStore,
        relation: str,
        columns: Mapping[str, ColumnDescriptor],
        translator: FieldTranslator,
        list_fields: Sequence[str] = (),
        detail_fields: Sequence[str] = (),
    ):
        self.store = store
        self.relation = relation
        self.columns = columns
        self.translator = translator
        self.primary_keys = [c.name for c in columns.values() if c.is_primary_key]
        self.list_fields = self._projection(list_fields)
        self.detail_fields = self._projection(detail_fields)

    def _projection(self, fields: Sequence[str]) -> List[str]:
        projected = []
        for name in self.translator.fields_to_storage(fields):
            if name in self.columns:
                projected.append(name)
            else:
                log.warn(f"Projection field {color_palette['column'](name)} not in {self.relation}; ignored")
        return projected

    # ===== save =====

    def save(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Insert or update one row from a storage-keyed map.

        The row is updated when every primary key holds a significant value,
        inserted otherwise.  Returns the row as stored, in API names.
        """
        if not self.primary_keys:
            raise SchemaError(f"relation '{self.relation}' declares no primary key")

        values, unusable = self._normalize(data)
        key = {name: values.get(name) for name in self.primary_keys}

        if all(is_significant(value) for value in key.values()):
            changes = {k: v for k, v in values.items() if k not in key}
            self._stamp(changes, unusable, UPDATE_TIME_COLUMNS)
            row = self.store.update_by_key(self.relation, key, changes)
            if row is None:
                log.warn(f"Update matched no row in {color_palette['table'](self.relation)} for {key}")
                return {}
            return self.translator.to_api(row)

        for name in self.primary_keys:
            if not is_significant(values.get(name)):
                values.pop(name, None)
        self._stamp(values, unusable, CREATE_TIME_COLUMNS | UPDATE_TIME_COLUMNS)
        row = self.store.insert(self.relation, values, self.primary_keys)
        return self.translator.to_api(row)

    def _normalize(self, data: Mapping[str, Any]):
        """Keep known columns and coerce string values to their column type."""
        values: Dict[str, Any] = {}
        unusable = set()
        for name, value in data.items():
            column = self.columns.get(name)
            if column is None:
                log.debug(f"Dropping unknown field {color_palette['field'](name)} from save body")
                continue
            try:
                values[name] = coerce_json_value(column.declared_type, value)
            except CoercionError as e:
                if column.declared_type == ColumnType.TIMESTAMP and self._is_auto_time(name):
                    unusable.add(name)
                    continue
                raise InvalidParameterError(f"invalid value for '{self.translator.field_to_api(name)}': {e.message}") from e
        return values, unusable

    @staticmethod
    def _is_auto_time(name: str) -> bool:
        return name in CREATE_TIME_COLUMNS or name in UPDATE_TIME_COLUMNS

    def _stamp(self, values: Dict[str, Any], unusable: set, conventions: frozenset) -> None:
        """Fill timestamp columns named by `conventions` unless a usable value was sent."""
        now = datetime.now()
        for column in self.columns.values():
            if column.name not in conventions or column.declared_type != ColumnType.TIMESTAMP:
                continue
            value = values.get(column.name)
            if column.name in unusable or value is None or value == "":
                values[column.name] = now

    # ===== reads =====

    def get(self, request: QueryRequest) -> Dict[str, Any]:
        """First matching row, or an empty object when nothing matches."""
        row = self.store.first(request, self.detail_fields)
        if row is None:
            return {}
        return self.translator.to_api(row)

    def list(self, request: QueryRequest) -> List[Dict[str, Any]]:
        """Every matching row, ordered, without pagination."""
        rows = self.store.query(request, self.list_fields)
        return [self.translator.to_api(row) for row in rows]

    def page(self, request: QueryRequest) -> Dict[str, Any]:
        total = self.store.count(request)
        rows = self.store.query(request, self.list_fields, paginate=True)
        result = PageResult(
            page=request.page,
            page_size=request.page_size,
            total=total,
            list=[self.translator.to_api(row) for row in rows],
        )
        return result.model_dump(by_alias=True)

    # ===== delete =====

    def delete(self, request: QueryRequest) -> Dict[str, Any]:
        if not request.conditions:
            raise InvalidParameterError("delete requires at least one condition")
        deleted = self.store.delete(request)
        return {"deleted_count": deleted}

    def delete_ids(self, ids: Sequence[Any]) -> Dict[str, Any]:
        """Delete rows whose primary key is in `ids`; the ids are echoed back."""
        if len(self.primary_keys) != 1:
            raise SchemaError(f"batch delete needs exactly one primary key on '{self.relation}'")
        if not ids:
            raise InvalidParameterError("'ids' must be a non-empty list")

        pk = self.columns[self.primary_keys[0]]
        try:
            keys = [coerce_json_value(pk.declared_type, value) for value in ids]
        except CoercionError as e:
            raise InvalidParameterError(f"invalid id: {e.message}") from e

        request = QueryRequest(table=self.relation, conditions=[Condition(field=pk.name, op=Operator.IN, value=keys)])
        deleted = self.store.delete(request)
        return {"deleted_count": deleted, "ids": list(ids)}

    # ===== table =====

    def table(self) -> Dict[str, Any]:
        """Public description of the column catalog."""
        return {
            "table": self.relation,
            "columns": [
                {
                    "name": column.name,
                    "field": self.translator.field_to_api(column.name),
                    "type": column.declared_type.value,
                    "sql_type": column.sql_type,
                    "comment": column.comment or "",
                    "nullable": column.is_nullable,
                    "primary_key": column.is_primary_key,
                    "auto_increment": column.is_auto_increment,
                }
                for column in self.columns.values()
            ],
            "primary_keys": list(self.primary_keys),
        }
