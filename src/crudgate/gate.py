"""Main gate application builder."""

from pathlib import Path
from typing import Dict, Optional, Union

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from crudgate.api.crud import CrudManager
from crudgate.api.envelope import fail, render
from crudgate.api.metadata import MetadataRouter
from crudgate.core.config import ServiceConfig, load_config
from crudgate.core.logging import log
from crudgate.ui import display_catalog, print_welcome


class ApiGate:
    """Builds the FastAPI application around a CrudManager."""

    def __init__(self, config: ServiceConfig, app: Optional[FastAPI] = None):
        """Initialize the gate; nothing touches the database until `generate_all_routes`."""
        self.config = config
        self.app = app or FastAPI()
        self.manager = CrudManager(config)
        self.routers: Dict[str, APIRouter] = {}
        log.set_level(config.gate.log_level)
        self._initialize_app()

    def _initialize_app(self) -> None:
        """Initialize FastAPI app configuration."""
        gate = self.config.gate
        self.app.title = gate.project_name
        self.app.version = gate.version
        self.app.description = gate.description

        if gate.author:
            self.app.contact = {"name": gate.author, "email": gate.email}

        # Add CORS middleware by default
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        self.app.state.crud_manager = self.manager

    def print_welcome(self, host: str = "localhost", port: int = 8000) -> None:
        """Print the welcome panel listing every table route served."""
        gate = self.config.gate
        routes = {
            gate.route_prefix + crud.prefix: [op.value for op in sorted(crud.operations)]
            for crud in self.manager.handlers()
        }
        print_welcome(gate.project_name, gate.version, host, port, routes)

    def gen_metadata_routes(self) -> None:
        """Generate the `/dt` metadata routes."""
        log.section("Generating Metadata Routes")
        router = APIRouter(prefix=self.config.gate.route_prefix)
        MetadataRouter(router, self.manager).register_all_routes()
        self.routers["metadata"] = router
        self.app.include_router(router)
        log.success("Generated metadata routes")

    def gen_table_routes(self, show_catalogs: bool = False) -> None:
        """
        Connect the databases, build one handler per configured table and
        mount the dispatch route.

        Raises:
            SchemaError: if any configured table's columns cannot be read
        """
        log.section("Generating Table Routes")
        self.manager.init()

        rows = []
        for crud in self.manager.handlers():
            rows.append([crud.prefix or "/", crud.relation, ", ".join(op.value for op in sorted(crud.operations))])
            if show_catalogs:
                display_catalog(crud.relation, crud.columns, crud.translator)
        log.table(["Prefix", "Table", "Operations"], rows, title="Table routes")

        self.routers["crud"] = self.manager.router
        self.app.include_router(self.manager.router)
        log.success(f"Generated table routes for {len(self.manager.routes)} tables")

    def configure_error_handlers(self) -> None:
        """
        Configure global error handlers for the API.

        Every error leaves the gate in the `{code, message, data}` shape.
        """

        @self.app.exception_handler(HTTPException)
        async def http_exception_handler(request, exc):
            return render(fail(exc.detail), status_code=exc.status_code)

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request, exc):
            log.error(f"Unhandled exception on {request.method} {request.url.path}: {exc!r}")
            message = str(exc) if self.config.gate.debug else "Internal server error"
            return render(fail(message), status_code=500)

        log.success("Configured global error handlers")

    def generate_all_routes(self, show_catalogs: bool = False) -> None:
        """
        Generate all routes for the API.

        Metadata routes go first so the table dispatch route cannot shadow them.
        """
        self.configure_error_handlers()
        self.gen_metadata_routes()
        self.gen_table_routes(show_catalogs=show_catalogs)

        self.app.router.add_event_handler("shutdown", self.manager.close)


def create_app(config: Union[ServiceConfig, str, Path], app: Optional[FastAPI] = None) -> FastAPI:
    """Build a ready-to-serve FastAPI app from a config object or YAML path."""
    if not isinstance(config, ServiceConfig):
        config = load_config(config)
    gate = ApiGate(config, app)
    gate.generate_all_routes()
    return gate.app
