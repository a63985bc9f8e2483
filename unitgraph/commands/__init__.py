"""CLI commands. Each module defines one click command or group."""

import click

from unitgraph.context import JobContext


async def create_job(ctx: click.Context, root: str, *, scan: bool = True) -> JobContext:
    """Create the job for ``root``, honoring a registry or runner preset on ``ctx.obj``."""
    obj = ctx.find_root().obj or {}
    return await JobContext.create(
        root, registry=obj.get("registry"), runner=obj.get("runner"), scan=scan
    )
