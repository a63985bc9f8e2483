"""Dependency listing and cross-repository resolution."""

from .lister import Lister, SandboxLister, list_dependencies
from .model import RawDependency, ResolvedDep, ResolvedTarget, Unresolved
from .resolver import DependencyResolver, Resolver, SandboxResolver

__all__ = [
    "DependencyResolver",
    "Lister",
    "RawDependency",
    "ResolvedDep",
    "ResolvedTarget",
    "Resolver",
    "SandboxLister",
    "SandboxResolver",
    "Unresolved",
    "list_dependencies",
]
