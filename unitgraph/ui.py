"""Central UI handler for unitgraph.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file.

Machine-readable output (``--json``) bypasses Rich and is written with
:func:`echo_json`, so it stays byte-exact for files produced by ``1> $@``
recipes. Human summaries go to ``err_console`` in that case.
"""

import json
import sys
from typing import Any

import click
from rich.console import Console
from rich.table import Table
from rich.theme import Theme

UNITGRAPH_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "unit": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

console = Console(theme=UNITGRAPH_THEME, force_terminal=sys.stdout.isatty())

err_console = Console(theme=UNITGRAPH_THEME, stderr=True, force_terminal=sys.stderr.isatty())


def print_warning(msg: str) -> None:
    err_console.print(f"[warning]WARNING:[/warning] {msg}")


def print_success(msg: str) -> None:
    console.print(f"[success]OK:[/success] {msg}")


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def make_table(title: str, *columns: str) -> Table:
    table = Table(title=title, show_lines=False, header_style="bold")
    for column in columns:
        table.add_column(column)
    return table
