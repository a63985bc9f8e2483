"""List and resolve source unit dependencies."""

import asyncio
import json
import sys
from pathlib import Path

import click

from unitgraph.commands import create_job
from unitgraph.context import JobContext, map_concurrently
from unitgraph.deps.lister import list_dependencies
from unitgraph.deps.model import RawDependency, ResolvedDep, decode_raw_dependencies
from unitgraph.ui import console, echo_json, make_table, print_warning
from unitgraph.unit import SourceUnit
from unitgraph.utils.error_handler import handle_exceptions
from unitgraph.utils.exit_codes import ExitCodes
from unitgraph.utils.logging import logger


@click.group()
@click.help_option("-h", "--help")
def deps():
    """Raw and resolved dependencies of source units.

    \b
    SUBCOMMANDS:
      list:     Raw dependencies as the toolchain's lister reports them
      resolve:  Cross-repository dependency edges

    \b
    EXAMPLES:
      unitgraph deps list
      unitgraph deps resolve --json mylib@python_package
      unitgraph deps resolve --from-file .unitgraph/build/mylib@python_package.rawdeps.json
    """


def _select(job: JobContext, unit_specs) -> list[SourceUnit]:
    units = job.select_units(unit_specs)
    if not units:
        what = ", ".join(unit_specs) if unit_specs else "the repository"
        print_warning(f"No source units selected from {what}")
        sys.exit(ExitCodes.NOTHING_SELECTED)
    return units


async def _list_units(job: JobContext, units: list[SourceUnit]) -> list[list[RawDependency]]:
    async def list_unit(unit: SourceUnit) -> list[RawDependency]:
        return await list_dependencies(job.registry, job.repo.root_dir, unit, job.repo, job.task)

    return await job.each_unit(units, list_unit)


@deps.command("list")
@handle_exceptions
@click.option("--root", default=".", help="Repository root directory")
@click.option("--json", "as_json", is_flag=True, help="Print the raw dependencies as JSON")
@click.argument("unit_specs", nargs=-1, metavar="[UNIT]...")
@click.pass_context
def list_command(ctx, root, as_json, unit_specs):
    """List the raw dependencies of each selected unit.

    UNIT is a unit ID (name@variant) or a bare unit name; without any, every
    unit of the repository is listed.
    """

    async def run():
        job = await create_job(ctx, root)
        units = _select(job, unit_specs)
        return job, units, await _list_units(job, units)

    job, units, listed = asyncio.run(run())

    if as_json:
        echo_json([dep.to_dict() for unit_deps in listed for dep in unit_deps])
        return

    for unit, unit_deps in zip(units, listed):
        table = make_table(
            f"{job.unit_id(unit)}: {len(unit_deps)} raw dependencies", "Type", "Target", "File"
        )
        for dep in unit_deps:
            table.add_row(dep.target_type, json.dumps(dep.target), dep.from_file)
        console.print(table)


@deps.command("resolve")
@handle_exceptions
@click.option("--root", default=".", help="Repository root directory")
@click.option("--json", "as_json", is_flag=True, help="Print the resolved edges as JSON")
@click.option(
    "--from-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Resolve the raw dependencies in this JSON file instead of listing units",
)
@click.argument("unit_specs", nargs=-1, metavar="[UNIT]...")
@click.pass_context
def resolve_command(ctx, root, as_json, from_file, unit_specs):
    """Resolve raw dependencies into cross-repository edges.

    Dependencies a resolver recognizes but cannot tie to a repository (a
    standard library import, for example) produce no edge. Any resolver
    error aborts the command without partial output.
    """
    if from_file and unit_specs:
        raise click.UsageError("--from-file cannot be combined with UNIT arguments")

    async def run() -> list[ResolvedDep]:
        if from_file:
            job = await create_job(ctx, root, scan=False)
            with open(from_file, encoding="utf-8") as f:
                raw = decode_raw_dependencies(json.load(f))
            logger.debug(f"Resolving {len(raw)} raw dependencies from {from_file}")
            return await job.task.resolver.resolve_all(raw, job.repo, job.task)

        job = await create_job(ctx, root)
        units = _select(job, unit_specs)
        listed = await _list_units(job, units)
        resolver = job.task.resolver

        async def resolve_unit(unit_deps: list[RawDependency]) -> list[ResolvedDep]:
            return await resolver.resolve_all(unit_deps, job.repo, job.task)

        per_unit = await map_concurrently(resolve_unit, listed, job.concurrency)
        return [edge for edges in per_unit for edge in edges]

    edges = asyncio.run(run())

    if as_json:
        echo_json([edge.to_dict() for edge in edges])
        return

    table = make_table(
        f"{len(edges)} resolved dependencies", "From unit", "To repo", "To unit", "Version"
    )
    for edge in edges:
        table.add_row(
            f"{edge.from_unit}@{edge.from_unit_type}" if edge.from_unit_type else edge.from_unit,
            edge.to_repo,
            f"{edge.to_unit}@{edge.to_unit_type}" if edge.to_unit_type else edge.to_unit,
            edge.to_version_string or edge.to_rev_spec,
        )
    console.print(table)
