"""Assemble the incremental build rule graph."""

import asyncio
from pathlib import Path

import click

from unitgraph.build.rules import create_makefile
from unitgraph.commands import create_job
from unitgraph.ui import print_success
from unitgraph.utils.error_handler import handle_exceptions


@click.command("makefile")
@handle_exceptions
@click.option("--root", default=".", help="Repository root directory")
@click.option(
    "--out",
    "output_dir",
    default=None,
    help="Directory for build data files (default: paths.build_dir)",
)
@click.option(
    "--write",
    "write_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the Makefile to this path instead of printing it",
)
@click.pass_context
def makefile(ctx, root, output_dir, write_path):
    """Print the Makefile that sequences dependency listing, resolution and graphing.

    Every rule maker contributes rules in registration order. Targets are
    data files under the build directory, written with "1> $@"; the
    generated file starts with an "all" rule and ends with .DELETE_ON_ERROR
    so a failed recipe never leaves a partial target behind.

    Recipes run the unitgraph CLI and expect make to be started from the
    repository root:

    \b
      unitgraph makefile --write .unitgraph/Makefile
      make -f .unitgraph/Makefile -j4
    """
    job = asyncio.run(create_job(ctx, root))
    output_dir = Path(output_dir or job.runtime["paths"]["build_dir"])

    mf = create_makefile(output_dir, job.repo, job.registry.rule_makers.items())

    if write_path:
        mf.write(write_path)
        print_success(f"Wrote {len(mf.rules)} rules to {write_path}")
    else:
        click.echo(mf.render(), nl=False)
