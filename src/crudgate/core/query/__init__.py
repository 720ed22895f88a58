"""Query-string parsing and SQL statement building."""

from .builder import QueryBuilder
from .models import Condition, PageResult, QueryRequest
from .operators import Operator
from .parser import QueryParser

__all__ = ["Condition", "Operator", "PageResult", "QueryBuilder", "QueryParser", "QueryRequest"]
