# src/crudgate/ui.py

from typing import Mapping, Sequence

from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .core.introspection.catalog import ColumnDescriptor
from .core.translate import FieldTranslator

# Shared console for start-up output
console = Console()


def display_catalog(
    relation: str,
    columns: Mapping[str, ColumnDescriptor],
    translator: FieldTranslator | None = None,
) -> None:
    """Prints the column catalog of a relation using a rich Table."""

    structure_table = Table(
        title=f"[bold]{relation}[/bold]",
        box=None,
        padding=(0, 1),
        show_header=False,
        show_edge=False,
    )
    structure_table.add_column("Name", style="cyan", no_wrap=True, width=24)
    structure_table.add_column("Type", style="green", width=24)
    structure_table.add_column("Details", style="white")

    for column in columns.values():
        col_name = f"{column.name}{'*' if not column.is_nullable else ''}"
        col_type = f"{column.declared_type} [dim]({column.sql_type})[/dim]"

        details = []
        if column.is_primary_key:
            details.append("[yellow]PK[/yellow]")
        if column.is_auto_increment:
            details.append("[yellow]AUTO[/yellow]")
        if translator is not None:
            api_name = translator.field_to_api(column.name)
            if api_name != column.name:
                details.append(f"[magenta]as {api_name}[/magenta]")
        if column.comment:
            details.append(f"[dim]{column.comment}[/dim]")

        structure_table.add_row(col_name, col_type, " ".join(details))

    console.print(structure_table)
    console.print()


def print_welcome(
    project_name: str,
    version: str,
    host: str,
    port: int,
    routes: Mapping[str, Sequence[str]] | None = None,
) -> None:
    """Prints the start-up panel: docs link plus every served prefix and its operations."""
    routes = routes or {}
    base_url = f"http://{host}:{port}"
    grid = Table(box=None, show_header=False, padding=(0, 1))
    grid.add_column("Prefix", style="cyan", no_wrap=True)
    grid.add_column("Operations", style="dim")
    for prefix, operations in routes.items():
        grid.add_row(f"{base_url}{prefix}/...", ", ".join(operations))

    docs = Text.from_markup(f"Docs at [link={base_url}/docs]{base_url}/docs[/link]")
    body = Group(Align.center(docs), Text(), grid) if routes else Align.center(docs)
    console.print(
        Panel(
            body,
            title=f"[bold green]{project_name} v{version}[/bold green]",
            subtitle=f"{len(routes)} table route(s)",
            border_style="blue",
            padding=(1, 2),
        )
    )
