"""
Metadata endpoints.

Exposes what the gate serves: every configured path prefix, the relation
behind it, its enabled operations and its column catalog.
"""

from typing import Any, Dict, List

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crudgate.core.logging import log

from .crud import CrudManager, CrudOps
from .envelope import ok, render


class TableSummary(BaseModel):
    """One configured table as seen from the API."""

    name: str
    prefix: str
    table: str
    operations: List[str]
    primary_keys: List[str]
    field_map: Dict[str, str]
    columns: List[Dict[str, Any]]


def build_table_summary(crud: CrudOps) -> TableSummary:
    info = crud.executor.table()
    return TableSummary(
        name=crud.config.name,
        prefix=crud.prefix,
        table=crud.relation,
        operations=sorted(op.value for op in crud.operations),
        primary_keys=info["primary_keys"],
        field_map=crud.translator.field_map,
        columns=info["columns"],
    )


class MetadataRouter:
    """Metadata route generator for the configured tables."""

    def __init__(self, router: APIRouter, manager: CrudManager):
        self.router = router
        self.manager = manager

    def register_all_routes(self) -> None:
        log.info(f"Registering metadata routes with prefix {self.router.prefix}/dt")
        self.register_tables_route()

    def register_tables_route(self) -> None:
        @self.router.get("/dt/tables", tags=["Metadata"], summary="List configured tables")
        async def get_tables() -> JSONResponse:
            summaries = [build_table_summary(crud).model_dump() for crud in self.manager.handlers()]
            return render(ok(summaries))
