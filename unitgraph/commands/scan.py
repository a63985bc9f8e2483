"""List the source units of a repository."""

import asyncio
import sys

import click

from unitgraph.commands import create_job
from unitgraph.ui import console, echo_json, make_table, print_warning
from unitgraph.utils.error_handler import handle_exceptions
from unitgraph.utils.exit_codes import ExitCodes


@click.command("scan")
@handle_exceptions
@click.option("--root", default=".", help="Repository root directory")
@click.option(
    "--json", "as_json", is_flag=True, help="Print variant-tagged JSON instead of a table"
)
@click.pass_context
def scan(ctx, root, as_json):
    """Discover the source units of a repository.

    Units listed under source_units in .unitgraph.yml are used as they are;
    otherwise every registered scanner runs. Units named in skip_units are
    left out.

    \b
    EXAMPLES:
      unitgraph scan
      unitgraph scan --json > units.json
    """
    job = asyncio.run(create_job(ctx, root))
    units = job.repo.source_units

    if as_json:
        echo_json(job.registry.units.encode_units(units))
        return

    if not units:
        print_warning(f"No source units found in {job.repo.root_dir}")
        sys.exit(ExitCodes.NOTHING_SELECTED)

    table = make_table(f"Source units of {job.repo.uri}", "ID", "Root dir", "Files")
    for unit in units:
        table.add_row(job.unit_id(unit), unit.root_dir or ".", str(len(unit.paths)))
    console.print(table)
