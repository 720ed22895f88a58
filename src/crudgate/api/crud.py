# src/crudgate/api/crud.py
"""Per-table handlers and the prefix-routing manager that owns them."""

import json
import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from crudgate.core.config import Operation, ServiceConfig, TableConfig
from crudgate.core.errors import (
    ConfigError,
    GateError,
    InvalidParameterError,
    MethodNotAllowed,
    OperationNotConfigured,
    PersistenceError,
)
from crudgate.core.introspection.catalog import ColumnCatalog
from crudgate.core.logging import color_palette, log
from crudgate.core.query.parser import QueryItems, QueryParser
from crudgate.core.translate import FieldTranslator
from crudgate.db.client import DbClient
from crudgate.db.store import RowStore

from .envelope import Envelope, fail, ok, render
from .executor import OperationExecutor

# HTTP verbs accepted by each operation
OPERATION_METHODS: Dict[Operation, frozenset] = {
    Operation.SAVE: frozenset({"POST"}),
    Operation.GET: frozenset({"GET"}),
    Operation.LIST: frozenset({"GET"}),
    Operation.PAGE: frozenset({"GET"}),
    Operation.DELETE: frozenset({"POST", "DELETE"}),
    Operation.TABLE: frozenset({"GET"}),
}

# Operations that read a JSON request body
BODY_OPERATIONS = frozenset({Operation.SAVE, Operation.DELETE})

IDS_FIELD = "ids"


class CrudOps:
    """
    Request handling for one configured table.

    The column catalog is fetched during construction; a table whose
    metadata cannot be read never gets a handler.
    """

    def __init__(self, config: TableConfig, store: RowStore, catalog: ColumnCatalog, strict: bool = False):
        self.config = config
        self.relation = config.table
        self.prefix = config.path_prefix
        self.store = store
        self.columns = catalog.fetch(self.relation)
        self.primary_keys = catalog.primary_keys(self.relation)
        self.operations = frozenset(config.operations)

        self.translator = FieldTranslator(config.field_map, identity_fields={"id", *self.primary_keys})
        self.parser = QueryParser(self.relation, self.translator, self.columns, strict=strict)
        self.executor = OperationExecutor(
            store,
            self.relation,
            self.columns,
            self.translator,
            list_fields=config.list_fields,
            detail_fields=config.detail_fields,
        )

    def resolve(self, name: str, method: str) -> Operation:
        """
        Map a route suffix and verb to an enabled operation.

        Raises:
            OperationNotConfigured: unknown or disabled operation
            MethodNotAllowed: operation exists but not for this verb
        """
        try:
            operation = Operation(name)
        except ValueError:
            raise OperationNotConfigured(f"operation not configured: {self.prefix}/{name}") from None
        if operation not in self.operations:
            raise OperationNotConfigured(f"operation not configured: {self.prefix}/{name}")
        if method.upper() not in OPERATION_METHODS[operation]:
            raise MethodNotAllowed(f"method {method.upper()} not allowed for {self.prefix}/{name}")
        return operation

    def execute(self, operation: Operation, query: QueryItems = (), body: Any = None) -> Any:
        """Parse the request for `operation` and run it; errors propagate."""
        match operation:
            case Operation.SAVE:
                if not isinstance(body, Mapping):
                    raise InvalidParameterError("save expects a JSON object body")
                return self.executor.save(self.translator.to_storage(body))
            case Operation.GET:
                return self.executor.get(self.parser.parse(query))
            case Operation.LIST:
                return self.executor.list(self.parser.parse(query))
            case Operation.PAGE:
                return self.executor.page(self.parser.parse(query))
            case Operation.DELETE:
                # An explicit id list in the body wins over query conditions.
                if isinstance(body, Mapping) and IDS_FIELD in body:
                    ids = body[IDS_FIELD]
                    if not isinstance(ids, list):
                        raise InvalidParameterError(f"'{IDS_FIELD}' must be a list")
                    return self.executor.delete_ids(ids)
                return self.executor.delete(self.parser.parse(query))
            case Operation.TABLE:
                return self.executor.table()
        raise OperationNotConfigured(f"operation not configured: {operation}")

    def handle(self, operation: Operation, query: QueryItems = (), body: Any = None) -> Envelope:
        """Run `operation` and wrap the outcome in an envelope."""
        try:
            return ok(self.execute(operation, query, body))
        except PersistenceError as e:
            log.error(f"{color_palette['operation'](operation)} on {color_palette['prefix'](self.prefix)}: {e}")
            return fail(e)
        except GateError as e:
            log.warn(f"{color_palette['operation'](operation)} on {color_palette['prefix'](self.prefix)}: {e}")
            return fail(e)


class CrudManager:
    """
    Owns database clients and table handlers, keyed by path prefix.

    One instance is built at start-up and handed to the application; there
    is no module-level registry.
    """

    def __init__(self, config: ServiceConfig):
        self.config = config
        self.clients: Dict[str, DbClient] = {}
        self.routes: Dict[str, CrudOps] = {}
        self._stores: Dict[Tuple[str, Optional[str]], Tuple[RowStore, ColumnCatalog]] = {}
        self._lock = threading.RLock()
        self.router = APIRouter(prefix=config.gate.route_prefix)
        self._register_dispatch()

    # ===== Construction =====

    def init(self) -> "CrudManager":
        """Connect every database and build every table handler."""
        with self._lock:
            log.section("Initializing CRUD handlers")
            for db_config in self.config.databases:
                log.info(f"Connecting to database {color_palette['schema'](db_config.name)} ({db_config.driver})")
                client = DbClient(db_config)
                with log.indented():
                    client.test_connection()
                self.clients[db_config.name] = client

            for table_config in self.config.tables:
                store, catalog = self._store_for(table_config)
                with log.timed(
                    f"Table {color_palette['table'](table_config.table)} -> {color_palette['prefix'](table_config.path_prefix)}"
                ):
                    crud = CrudOps(table_config, store, catalog, strict=self.config.gate.strict_conditions)
                self._add(crud)
            log.success(f"Registered {len(self.routes)} table handler(s)")
        return self

    def _store_for(self, table_config: TableConfig) -> Tuple[RowStore, ColumnCatalog]:
        key = (table_config.database, table_config.schema_name)
        if key not in self._stores:
            client = self.clients.get(table_config.database)
            if client is None:
                raise ConfigError(f"database not found for table {table_config.name}: {table_config.database}")
            store = RowStore(client.engine, schema=table_config.schema_name)
            self._stores[key] = (store, ColumnCatalog(store.get_columns))
        return self._stores[key]

    def _add(self, crud: CrudOps) -> None:
        if crud.prefix in self.routes:
            raise ConfigError(f"a handler is already registered for prefix '{crud.prefix}'")
        self.routes[crud.prefix] = crud

    def register(self, crud: CrudOps) -> None:
        """Add a handler built outside the configuration file."""
        with self._lock:
            self._add(crud)

    def reload(self, config: ServiceConfig) -> "CrudManager":
        """Swap in a new configuration, closing the old connections."""
        with self._lock:
            self.close()
            self.config = config
            return self.init()

    def close(self) -> None:
        with self._lock:
            for client in self.clients.values():
                client.close()
            self.clients = {}
            self.routes = {}
            self._stores = {}

    def handlers(self) -> List[CrudOps]:
        with self._lock:
            return list(self.routes.values())

    # ===== Routing =====

    def match(self, path: str) -> Tuple[CrudOps, str]:
        """
        Find the handler with the longest prefix owning `path`.

        Returns the handler and the operation name that follows the prefix.
        """
        path = "/" + path.strip("/")
        with self._lock:
            candidates = sorted(self.routes.items(), key=lambda item: len(item[0]), reverse=True)
        for prefix, crud in candidates:
            if prefix == "" or path == prefix or path.startswith(prefix + "/"):
                operation = path[len(prefix):].strip("/")
                if operation and "/" not in operation:
                    return crud, operation
        raise OperationNotConfigured(f"path not configured: {path}")

    def _register_dispatch(self) -> None:
        @self.router.api_route(
            "/{path:path}",
            methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
            include_in_schema=False,
        )
        async def dispatch(path: str, request: Request) -> JSONResponse:
            try:
                crud, name = self.match(path)
                operation = crud.resolve(name, request.method)
            except (OperationNotConfigured, MethodNotAllowed) as e:
                log.debug(f"{request.method} /{path}: {e}")
                return render(fail(e), status_code=e.status_code)

            try:
                body = await read_json_body(request) if operation in BODY_OPERATIONS else None
            except InvalidParameterError as e:
                return render(fail(e))

            envelope = await run_in_threadpool(crud.handle, operation, request.query_params, body)
            return render(envelope)


async def read_json_body(request: Request) -> Any:
    """Decode the request body as JSON; an empty body yields None."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidParameterError(f"failed to decode JSON body: {e}") from e
