"""Pytest configuration and fixtures.

Fake in-process plugins stand in for real toolchains so the orchestration
can be exercised without Docker or language tooling.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from unitgraph.build.makers import register_builtin_rule_makers
from unitgraph.config import RepoConfig
from unitgraph.context import TaskContext
from unitgraph.deps.lister import Lister
from unitgraph.deps.model import RawDependency, ResolvedTarget, Unresolved
from unitgraph.deps.resolver import Resolver
from unitgraph.errors import ToolFailedError
from unitgraph.graph.grapher import Grapher
from unitgraph.graph.model import Output
from unitgraph.registry import RegistryBuilder
from unitgraph.sandbox.runner import ProcessRunner
from unitgraph.scan import Scanner
from unitgraph.unit import SourceUnit


@dataclass
class FakePackage(SourceUnit):
    package: str
    dir: str = "."
    files: list[str] = field(default_factory=list)

    @property
    def name(self):
        return self.package

    @property
    def root_dir(self):
        return self.dir

    @property
    def paths(self):
        return list(self.files)


@dataclass
class FakeModule(SourceUnit):
    module: str
    files: list[str] = field(default_factory=list)

    @property
    def name(self):
        return self.module

    @property
    def root_dir(self):
        return os.path.dirname(self.files[0]) if self.files else "."

    @property
    def paths(self):
        return list(self.files)


@dataclass
class FakeTarget:
    """Payload of "fake" raw dependencies."""

    repo: str = ""
    unit: str = ""
    version: str = ""
    error: str = ""


def fake_dep(from_unit="", repo="", unit="", version="", error="", from_file=""):
    target = {"repo": repo, "unit": unit, "version": version, "error": error}
    return RawDependency(
        target_type="fake", target=target, from_unit=from_unit, from_file=from_file
    )


class StaticScanner(Scanner):
    def __init__(self, units):
        self.units = list(units)

    async def scan(self, dir, config, ctx):
        return list(self.units)


class StaticLister(Lister):
    def __init__(self, deps_by_unit):
        self.deps_by_unit = deps_by_unit

    async def list(self, dir, unit, config, ctx):
        return [
            RawDependency(**dep.to_dict()) for dep in self.deps_by_unit.get(unit.name, [])
        ]


class FakeResolver(Resolver):
    """Resolves FakeTarget payloads; no repo means Unresolved, error raises."""

    def __init__(self):
        self.seen = []

    async def resolve(self, dep, config, ctx):
        target = dep.decode_target(FakeTarget)
        self.seen.append(target)
        if target.error:
            raise ToolFailedError(1, target.error, "fake-resolver")
        if not target.repo:
            return Unresolved("no repository")
        return ResolvedTarget(
            to_repo_clone_url=target.repo,
            to_unit=target.unit,
            to_unit_type="fake_package" if target.unit else "",
            to_version_string=target.version,
        )


class StaticGrapher(Grapher):
    def __init__(self, outputs):
        self.outputs = outputs

    async def graph(self, dir, unit, config, ctx):
        return self.outputs.get(unit.name, Output())


@pytest.fixture
def make_registry():
    """Build a registry wired with the fake variants and plugins."""

    def make(units=(), deps=None, graphs=None, resolver=None):
        builder = RegistryBuilder()
        register_builtin_rule_makers(builder)
        builder.register_variant("fake_package", FakePackage)
        builder.register_variant("fake_module", FakeModule)
        builder.register_scanner("static", StaticScanner(units))
        builder.register_lister("fake_package", StaticLister(deps or {}))
        builder.register_resolver("fake", resolver or FakeResolver())
        builder.register_grapher("fake_package", StaticGrapher(graphs or {}))
        return builder.build()

    return make


@pytest.fixture
def repo_config(tmp_path):
    return RepoConfig(uri="example.com/me/project", root_dir=str(tmp_path))


@pytest.fixture
def task_context(make_registry):
    return TaskContext(ProcessRunner(), make_registry())


@pytest.fixture
def sample_repo(tmp_path):
    """Minimal repository with two packages and a .unitgraph.yml."""
    for rel in ("a/a.py", "a/util.py", "b/b.py"):
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("# source\n")
    (tmp_path / ".unitgraph.yml").write_text(
        "clone_url: https://github.com/example/project.git\n"
    )
    return Path(tmp_path)
