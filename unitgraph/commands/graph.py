"""Analyze source units for definitions, references and docs."""

import asyncio
import sys

import click

from unitgraph.commands import create_job
from unitgraph.graph.grapher import graph_unit
from unitgraph.graph.model import Output
from unitgraph.ui import console, echo_json, err_console, print_warning
from unitgraph.unit import SourceUnit
from unitgraph.utils.error_handler import handle_exceptions
from unitgraph.utils.exit_codes import ExitCodes


@click.command("graph")
@handle_exceptions
@click.option("--root", default=".", help="Repository root directory")
@click.option("--json", "as_json", is_flag=True, help="Print each unit's canonical JSON output")
@click.option("--summary/--no-summary", default=True, help="Summarize output data")
@click.argument("unit_specs", nargs=-1, metavar="[UNIT]...")
@click.pass_context
def graph(ctx, root, as_json, summary, unit_specs):
    """Analyze a repository's source code for definitions and references.

    If UNIT arguments are given (unit IDs or bare unit names), only matching
    source units are graphed. Units are graphed concurrently; a failure in
    any of them (including two symbols sharing a path) fails the command.

    \b
    EXAMPLES:
      unitgraph graph
      unitgraph graph --json --no-summary mylib@python_package > mylib.graph.json
    """

    async def run():
        job = await create_job(ctx, root)
        units = job.select_units(unit_specs)

        async def graph_one(unit: SourceUnit) -> Output:
            return await graph_unit(job.registry, job.repo.root_dir, unit, job.repo, job.task)

        return job, units, await job.each_unit(units, graph_one)

    job, units, outputs = asyncio.run(run())

    if not units:
        print_warning("No source units matched")
        sys.exit(ExitCodes.NOTHING_SELECTED)

    # keep stdout pure JSON when --json is given
    out = err_console if as_json else console
    for unit, output in zip(units, outputs):
        if summary:
            out.print(f"## {job.unit_id(unit)} output summary:", markup=False, highlight=False)
            out.print(f" - {len(output.symbols)} symbols", highlight=False)
            out.print(f" - {len(output.refs)} refs", highlight=False)
            out.print(f" - {len(output.docs)} docs", highlight=False)
        if as_json:
            echo_json(output.to_dict())
