"""Scanners discover the source units of a repository."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from unitgraph.errors import DuplicateUnitError
from unitgraph.sandbox.container import Command
from unitgraph.unit import SourceUnit
from unitgraph.utils.logging import logger

if TYPE_CHECKING:
    from unitgraph.config import RepoConfig
    from unitgraph.context import TaskContext
    from unitgraph.registry import Registry


class Scanner(ABC):
    @abstractmethod
    async def scan(self, dir: str, config: RepoConfig, ctx: TaskContext) -> list[SourceUnit]:
        """Return the source units found in the repository checked out at ``dir``."""


ScannerBuilder = Callable[[str, "RepoConfig", "TaskContext"], Command]


class SandboxScanner(Scanner):
    """Scanner backed by a sandboxed tool printing variant-tagged units."""

    def __init__(self, build: ScannerBuilder):
        self.build = build

    async def scan(self, dir: str, config: RepoConfig, ctx: TaskContext) -> list[SourceUnit]:
        command = self.build(dir, config, ctx)
        return await ctx.run(command, ctx.registry.units.decode_units, "scan")


async def scan_repository(
    registry: Registry, dir: str, config: RepoConfig, ctx: TaskContext
) -> list[SourceUnit]:
    """Run every registered scanner and merge their units.

    Scanners run in registration order; units keep the order each scanner
    reported them in. Two units with the same name and variant are rejected.
    """
    units: list[SourceUnit] = []
    seen: dict[str, str] = {}
    for name, scanner in registry.scanners.items():
        found = await scanner.scan(dir, config, ctx)
        logger.debug(f"scanner {name} found {len(found)} source unit(s)")
        for unit in found:
            unit_id = registry.units.make_id(unit)
            if unit_id in seen:
                raise DuplicateUnitError(
                    f"source unit {unit_id} reported twice (scanners {seen[unit_id]} and {name})"
                )
            seen[unit_id] = name
            units.append(unit)
    return units
