# src/crudgate/core/query/models.py
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from .operators import Operator

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
# Upper bound for page and pageSize; keeps LIMIT / OFFSET inside a signed 64-bit integer.
MAX_PAGE_VALUE = 2**31 - 1


class Condition(BaseModel):
    """One filter predicate on a storage column."""

    model_config = ConfigDict(frozen=True)

    field: str
    op: Operator = Operator.EQ
    value: Any = None


class QueryRequest(BaseModel):
    """A parsed read/delete request; conditions are AND-ed in order."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    table: str
    conditions: List[Condition] = []
    page: int = Field(default=DEFAULT_PAGE, ge=1, le=MAX_PAGE_VALUE)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_VALUE, alias="pageSize")
    order_by: List[str] = Field(default_factory=list, alias="orderBy")
    order_by_desc: List[str] = Field(default_factory=list, alias="orderByDesc")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PageResult(BaseModel):
    """One page of translated rows plus the unpaginated match count."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    page_size: int = Field(alias="pageSize")
    total: int
    list: List[Dict[str, Any]] = []
