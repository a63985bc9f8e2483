"""Graphers extract the symbol/reference/documentation graph of one unit."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from unitgraph.errors import DuplicateSymbolPathError
from unitgraph.graph.model import Output, Symbol, SymbolKey
from unitgraph.sandbox.container import Command
from unitgraph.unit import SourceUnit

if TYPE_CHECKING:
    from unitgraph.config import RepoConfig
    from unitgraph.context import TaskContext
    from unitgraph.registry import Registry


class Grapher(ABC):
    @abstractmethod
    async def graph(
        self, dir: str, unit: SourceUnit, config: RepoConfig, ctx: TaskContext
    ) -> Output:
        """Graph ``unit`` of the repository checked out at ``dir``."""


GrapherBuilder = Callable[[str, SourceUnit, "RepoConfig", "TaskContext"], Command]


class SandboxGrapher(Grapher):
    """Grapher backed by a sandboxed tool.

    Builders whose output references other repositories by import path can
    re-resolve them inside an async transform through ``ctx.resolver``.
    """

    def __init__(self, build: GrapherBuilder):
        self.build = build

    async def graph(
        self, dir: str, unit: SourceUnit, config: RepoConfig, ctx: TaskContext
    ) -> Output:
        command = self.build(dir, unit, config, ctx)
        return await ctx.run(command, Output.from_dict, "graph")


def check_unique_symbol_paths(symbols: Iterable[Symbol]) -> None:
    """Raise DuplicateSymbolPathError on the first repeated symbol key."""
    seen: dict[SymbolKey, Symbol] = {}
    for symbol in symbols:
        first = seen.setdefault(symbol.key, symbol)
        if first is not symbol:
            raise DuplicateSymbolPathError(first, symbol)


async def graph_unit(
    registry: Registry, dir: str, unit: SourceUnit, config: RepoConfig, ctx: TaskContext
) -> Output:
    """Graph ``unit`` with the grapher registered for its variant.

    The whole output is rejected if two symbols share a key.
    """
    grapher = registry.grapher_for(unit)
    output = await grapher.graph(dir, unit, config, ctx)
    check_unique_symbol_paths(output.symbols)
    return output
