"""unitgraph CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click
from rich.table import Table

from unitgraph import __version__
from unitgraph.ui import console


class UnitGraphGroup(click.Group):
    """Click group rendering its command list as a Rich table."""

    def format_commands(self, ctx, formatter):
        table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
        table.add_column("Command", style="unit", width=12)
        table.add_column("Description", style="white")
        for name, cmd in self.commands.items():
            if getattr(cmd, "hidden", False):
                continue
            table.add_row(name, cmd.get_short_help_str(limit=60))

        with console.capture() as capture:
            console.print()
            console.rule("[bold]COMMANDS[/bold]")
            console.print(table)
            console.print()
            console.print("For detailed options: [unit]unitgraph <command> --help[/unit]")
        formatter.write(capture.get())


@click.group(cls=UnitGraphGroup)
@click.version_option(version=__version__, prog_name="unitgraph")
@click.help_option("-h", "--help")
def cli():
    """unitgraph - source unit dependency and symbol graph analysis

    Decomposes a repository into source units, lists and resolves their
    dependencies and extracts their symbol graph, delegating the
    language-specific work to toolchains run in isolated sandboxes.

    \b
    QUICK START:
      unitgraph scan                 # Source units of the current repository
      unitgraph deps resolve         # Cross-repository dependency edges
      unitgraph graph                # Symbol/ref/doc counts per unit
      unitgraph makefile --write .unitgraph/Makefile
    """


from unitgraph.commands.deps import deps
from unitgraph.commands.graph import graph
from unitgraph.commands.makefile import makefile
from unitgraph.commands.scan import scan

cli.add_command(scan)
cli.add_command(deps)
cli.add_command(graph)
cli.add_command(makefile)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
