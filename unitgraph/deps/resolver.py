"""Dependency resolution: raw descriptors to cross-repository edges.

Resolvers are keyed by ``RawDependency.target_type``, independent of unit
variant, since one toolchain may emit several kinds of dependency. A resolver
answers with a :class:`ResolvedTarget`, or with :class:`Unresolved` when it
recognizes the dependency but it has no corresponding edge (a standard library
import, for instance).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from unitgraph.deps.model import (
    RawDependency,
    ResolvedDep,
    ResolvedTarget,
    ResolveResult,
    Unresolved,
    decode_resolve_result,
)
from unitgraph.repo import make_uri
from unitgraph.sandbox.container import Command
from unitgraph.utils.logging import logger

if TYPE_CHECKING:
    from unitgraph.config import RepoConfig
    from unitgraph.context import TaskContext
    from unitgraph.registry import Registry


class Resolver(ABC):
    @abstractmethod
    async def resolve(
        self, dep: RawDependency, config: RepoConfig, ctx: TaskContext
    ) -> ResolveResult:
        """Resolve one raw dependency of the target type this resolver is registered for."""


ResolverBuilder = Callable[[RawDependency, "RepoConfig", "TaskContext"], "Command | ResolveResult"]


class SandboxResolver(Resolver):
    """Resolver that runs a sandboxed tool printing a ResolvedTarget (or null).

    The builder may answer directly with a result instead of a Command when
    no tool run is needed, e.g. when the target payload already names the
    repository.
    """

    def __init__(self, build: ResolverBuilder):
        self.build = build

    async def resolve(
        self, dep: RawDependency, config: RepoConfig, ctx: TaskContext
    ) -> ResolveResult:
        built = self.build(dep, config, ctx)
        if isinstance(built, (ResolvedTarget, Unresolved)):
            return built
        return await ctx.run(built, decode_resolve_result, "resolve")


class DependencyResolver:
    """Dispatches raw dependencies to the resolvers of a built registry."""

    def __init__(self, registry: Registry):
        self.registry = registry

    async def resolve(
        self, dep: RawDependency, config: RepoConfig, ctx: TaskContext
    ) -> ResolveResult:
        """Resolve a single dependency.

        Raises NoResolverError when nothing is registered for the target type.
        Errors of the resolver itself propagate; retrying or skipping is up to
        the caller.
        """
        resolver = self.registry.resolver_for(dep.target_type)
        result = await resolver.resolve(dep, config, ctx)
        if not isinstance(result, (ResolvedTarget, Unresolved)):
            raise TypeError(
                f"resolver for {dep.target_type!r} returned {type(result).__name__}, "
                "expected ResolvedTarget or Unresolved"
            )
        return result

    async def resolve_all(
        self, raw_deps: Iterable[RawDependency], config: RepoConfig, ctx: TaskContext
    ) -> list[ResolvedDep]:
        """Resolve every dependency, in order, into edges.

        Unresolved dependencies produce no edge. The first error aborts the
        whole batch and nothing is returned.
        """
        resolved: list[ResolvedDep] = []
        for dep in raw_deps:
            result = await self.resolve(dep, config, ctx)
            if isinstance(result, Unresolved):
                logger.debug(
                    f"no edge for {dep.target_type} dependency of {dep.from_unit}: {result.reason}"
                )
                continue
            resolved.append(
                ResolvedDep(
                    from_repo=config.uri,
                    from_unit=dep.from_unit,
                    from_unit_type=dep.from_unit_type,
                    to_repo=make_uri(result.to_repo_clone_url),
                    to_repo_clone_url=result.to_repo_clone_url,
                    to_unit=result.to_unit,
                    to_unit_type=result.to_unit_type,
                    to_version_string=result.to_version_string,
                    to_rev_spec=result.to_rev_spec,
                )
            )
        return resolved
