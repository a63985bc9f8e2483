"""Listers extract raw dependencies from one source unit."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from unitgraph.deps.model import RawDependency, decode_raw_dependencies
from unitgraph.sandbox.container import Command
from unitgraph.unit import SourceUnit

if TYPE_CHECKING:
    from unitgraph.config import RepoConfig
    from unitgraph.context import TaskContext
    from unitgraph.registry import Registry


class Lister(ABC):
    @abstractmethod
    async def list(
        self, dir: str, unit: SourceUnit, config: RepoConfig, ctx: TaskContext
    ) -> list[RawDependency]:
        """Return the raw dependencies of ``unit``."""


ListerBuilder = Callable[[str, SourceUnit, "RepoConfig", "TaskContext"], Command]


class SandboxLister(Lister):
    def __init__(self, build: ListerBuilder):
        self.build = build

    async def list(
        self, dir: str, unit: SourceUnit, config: RepoConfig, ctx: TaskContext
    ) -> list[RawDependency]:
        command = self.build(dir, unit, config, ctx)
        return await ctx.run(command, decode_raw_dependencies, "list")


async def list_dependencies(
    registry: Registry, dir: str, unit: SourceUnit, config: RepoConfig, ctx: TaskContext
) -> list[RawDependency]:
    """List ``unit``'s raw dependencies with the lister registered for its variant.

    Dependencies the lister did not attribute to a unit are attributed to
    ``unit``.
    """
    lister = registry.lister_for(unit)
    deps = await lister.list(dir, unit, config, ctx)
    variant = registry.units.variant_of(unit)
    for dep in deps:
        if not dep.from_unit:
            dep.from_unit = unit.name
        if not dep.from_unit_type:
            dep.from_unit_type = variant
    return deps
