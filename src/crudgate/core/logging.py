"""Console logging for crudgate, rendered with rich."""

import time
from contextlib import contextmanager
from enum import IntEnum
from typing import Any, Callable, Dict, Iterator, List, Sequence

from rich.console import Console
from rich.table import Table


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40


def _styled(style: str) -> Callable[[Any], str]:
    return lambda text: f"[{style}]{text}[/{style}]"


# Colors used to highlight names inside log messages
color_palette: Dict[str, Callable[[Any], str]] = {
    "schema": _styled("bold blue"),
    "table": _styled("cyan"),
    "column": _styled("green"),
    "field": _styled("yellow"),
    "operation": _styled("magenta"),
    "prefix": _styled("bold cyan"),
}


class Logger:
    """Small leveled logger on top of a rich Console."""

    def __init__(self, console: Console | None = None, level: LogLevel = LogLevel.INFO):
        self.console = console or Console(stderr=True)
        self.level = level
        self._indent = 0

    def set_level(self, level: LogLevel | str) -> None:
        if isinstance(level, str):
            level = LogLevel[level.upper()]
        self.level = level

    def _emit(self, level: LogLevel, tag: str, message: str) -> None:
        if level < self.level:
            return
        pad = "  " * self._indent
        self.console.print(f"{pad}{tag} {message}", highlight=False)

    def debug(self, message: str) -> None:
        self._emit(LogLevel.DEBUG, "[dim]DEBUG[/dim]", f"[dim]{message}[/dim]")

    def info(self, message: str) -> None:
        self._emit(LogLevel.INFO, "[blue]INFO [/blue]", message)

    def success(self, message: str) -> None:
        self._emit(LogLevel.INFO, "[green]OK   [/green]", message)

    def warn(self, message: str) -> None:
        self._emit(LogLevel.WARN, "[yellow]WARN [/yellow]", message)

    def error(self, message: str) -> None:
        self._emit(LogLevel.ERROR, "[bold red]ERROR[/bold red]", message)

    def section(self, title: str) -> None:
        if self.level <= LogLevel.INFO:
            self.console.rule(f"[bold]{title}[/bold]")

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._indent += 1
        try:
            yield
        finally:
            self._indent -= 1

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        """Log how long the wrapped block took."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = (time.perf_counter() - start) * 1000
            self.info(f"{label} [dim]({elapsed:.1f} ms)[/dim]")

    def table(self, headers: Sequence[str], rows: List[Sequence[Any]], title: str | None = None) -> None:
        if self.level > LogLevel.INFO:
            return
        grid = Table(title=title, show_edge=False)
        for header in headers:
            grid.add_column(header)
        for row in rows:
            grid.add_row(*[str(cell) for cell in row])
        self.console.print(grid)


log = Logger()
