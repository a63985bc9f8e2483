"""Centralized exit codes for the unitgraph CLI."""


class ExitCodes:
    """Standard exit codes for unitgraph CLI commands."""

    SUCCESS = 0

    # Generic failure reported through click.ClickException
    FAILURE = 1

    # click usage errors
    USAGE = 2

    # A unit filter selected nothing
    NOTHING_SELECTED = 3
