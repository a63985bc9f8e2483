"""Execution contexts handed to every plugin operation and CLI command."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from unitgraph.config import RepoConfig, load_repo_config
from unitgraph.config_runtime import load_runtime_config
from unitgraph.deps.resolver import DependencyResolver
from unitgraph.registry import Registry, build_registry
from unitgraph.sandbox.container import Command
from unitgraph.sandbox.runner import Runner, get_runner
from unitgraph.scan import scan_repository
from unitgraph.unit import SourceUnit, unit_matches_args
from unitgraph.utils.error_handler import unwrap_exception_group
from unitgraph.utils.logging import logger

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class TaskContext:
    """What a plugin operation may use: the runner, timeouts and the registry.

    Plugins run tools through :meth:`run` rather than holding a runner of
    their own, so the runner and its timeouts are chosen by configuration.
    """

    runner: Runner
    registry: Registry
    # seconds per operation ("scan", "list", "resolve", "graph")
    timeouts: Mapping[str, float] = field(default_factory=dict)

    @property
    def resolver(self) -> DependencyResolver:
        return DependencyResolver(self.registry)

    def timeout(self, operation: str) -> float | None:
        value = self.timeouts.get(operation)
        return float(value) if value else None

    async def run(self, command: Command, decode: Callable[[Any], T], operation: str = "") -> T:
        return await self.runner.run(command, decode, timeout=self.timeout(operation))


async def map_concurrently(
    fn: Callable[[T], Awaitable[R]], items: Sequence[T], limit: int
) -> list[R]:
    """Await ``fn`` over ``items`` with at most ``limit`` in flight.

    Results keep the order of ``items``. The first failure cancels the rest
    and is raised as is.
    """
    semaphore = asyncio.Semaphore(max(1, limit))
    results: list[Any] = [None] * len(items)

    async def worker(index: int, item: T) -> None:
        async with semaphore:
            results[index] = await fn(item)

    try:
        async with asyncio.TaskGroup() as tg:
            for index, item in enumerate(items):
                tg.create_task(worker(index, item))
    except ExceptionGroup as eg:
        raise unwrap_exception_group(eg) from None
    return results


@dataclass
class JobContext:
    """One repository prepared for analysis: configs, registry, runner and units."""

    root: Path
    repo: RepoConfig
    registry: Registry
    task: TaskContext
    runtime: dict[str, Any]

    @classmethod
    async def create(
        cls,
        root: str | Path = ".",
        *,
        registry: Registry | None = None,
        runner: Runner | None = None,
        scan: bool = True,
    ) -> JobContext:
        """Load both configurations and settle the list of source units.

        Units listed in the repository configuration are used as is;
        otherwise every registered scanner runs, unless ``scan`` is false.
        ``skip_units`` is applied last.
        """
        root = Path(root)
        runtime = load_runtime_config(str(root))
        if registry is None:
            registry = build_registry()
        repo = load_repo_config(root, registry.units)
        if runner is None:
            runner = get_runner(runtime)
        task = TaskContext(runner, registry, runtime["timeouts"])

        if scan and not repo.source_units:
            logger.info(f"Scanning {repo.root_dir} for source units")
            repo = repo.with_units(await scan_repository(registry, repo.root_dir, repo, task))
        if repo.skip_units:
            skip = set(repo.skip_units)
            repo = repo.with_units(
                u for u in repo.source_units if registry.units.make_id(u) not in skip
            )
        logger.debug(f"{repo.uri}: {len(repo.source_units)} source unit(s)")
        return cls(root=root, repo=repo, registry=registry, task=task, runtime=runtime)

    @property
    def concurrency(self) -> int:
        return int(self.runtime["limits"]["concurrency"])

    def select_units(self, specs: Sequence[str]) -> list[SourceUnit]:
        units = self.registry.units
        return [u for u in self.repo.source_units if unit_matches_args(specs, u, units)]

    def unit_id(self, unit: SourceUnit) -> str:
        return self.registry.units.make_id(unit)

    async def each_unit(
        self, units: Sequence[SourceUnit], fn: Callable[[SourceUnit], Awaitable[R]]
    ) -> list[R]:
        return await map_concurrently(fn, units, self.concurrency)
