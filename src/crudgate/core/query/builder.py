# src/crudgate/core/query/builder.py
from typing import List, Sequence

from sqlalchemy import ColumnElement, Delete, Select, Table, and_, delete, func, not_, select

from .models import Condition, QueryRequest
from .operators import LIST_OPERATORS, NULL_OPERATORS, OPERATOR_MAP, Operator


def condition_clause(table: Table, condition: Condition) -> ColumnElement:
    """Translate one condition into a SQLAlchemy boolean clause."""
    column = table.c[condition.field]
    method = getattr(column, OPERATOR_MAP[condition.op])

    if condition.op in NULL_OPERATORS:
        return method(None)

    value = condition.value
    if condition.op in LIST_OPERATORS and not isinstance(value, (list, tuple)):
        value = [value]

    if condition.op == Operator.BETWEEN:
        return method(value[0], value[1])
    if condition.op == Operator.NOT_BETWEEN:
        return not_(method(value[0], value[1]))
    return method(value)


class QueryBuilder:
    """
    Builds filtered and sorted SQLAlchemy statements from a parsed request.
    """

    def __init__(self, table: Table, request: QueryRequest):
        self.table = table
        self.request = request

    def where(self) -> List[ColumnElement]:
        return [condition_clause(self.table, c) for c in self.request.conditions]

    def _filtered(self, stmt):
        clauses = self.where()
        if clauses:
            stmt = stmt.where(and_(*clauses))
        return stmt

    def _sorted(self, stmt: Select) -> Select:
        for name in self.request.order_by:
            stmt = stmt.order_by(self.table.c[name].asc())
        for name in self.request.order_by_desc:
            stmt = stmt.order_by(self.table.c[name].desc())
        return stmt

    def select(self, fields: Sequence[str] = (), paginate: bool = False, limit: int | None = None) -> Select:
        """
        Build a SELECT applying conditions, projection and ordering.

        Args:
            fields: storage columns to project; all columns when empty
            paginate: apply the request's page / pageSize as LIMIT / OFFSET
            limit: explicit row limit (ignored when paginating)
        """
        columns = [self.table.c[name] for name in fields if name in self.table.c] or [self.table]
        stmt = self._sorted(self._filtered(select(*columns)))
        if paginate:
            stmt = stmt.limit(self.request.page_size).offset(self.request.offset)
        elif limit is not None:
            stmt = stmt.limit(limit)
        return stmt

    def count(self) -> Select:
        return self._filtered(select(func.count()).select_from(self.table))

    def delete(self) -> Delete:
        return self._filtered(delete(self.table))
