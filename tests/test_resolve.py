"""Tests for dependency listing and resolution."""

import asyncio
import json
import sys
from dataclasses import dataclass

import pytest

from conftest import FakeModule, FakePackage, FakeResolver, FakeTarget, fake_dep
from unitgraph.deps.lister import list_dependencies
from unitgraph.deps.model import (
    RawDependency,
    ResolvedDep,
    ResolvedTarget,
    Unresolved,
    decode_raw_dependencies,
)
from unitgraph.deps.resolver import DependencyResolver, Resolver, SandboxResolver
from unitgraph.errors import NoPluginError, NoResolverError, SchemaMismatchError, ToolFailedError
from unitgraph.registry import RegistryBuilder
from unitgraph.sandbox.container import Command, Container


class TestResolveAll:
    """Edges come out in input order; any error aborts the whole batch."""

    def test_unresolved_dependency_produces_no_edge(
        self, make_registry, repo_config, task_context
    ):
        deps = [
            fake_dep("a", repo="https://github.com/x/one.git", unit="one"),
            fake_dep("a"),
            fake_dep("a", repo="git://github.com/x/three", unit="three", version="1.2.0"),
            fake_dep("a", repo="https://github.com/x/four/", unit="four"),
        ]
        resolver = DependencyResolver(make_registry())

        edges = asyncio.run(resolver.resolve_all(deps, repo_config, task_context))

        assert len(edges) == len(deps) - 1
        assert [e.to_unit for e in edges] == ["one", "three", "four"]
        assert [e.to_repo for e in edges] == [
            "github.com/x/one",
            "github.com/x/three",
            "github.com/x/four",
        ]
        assert edges[1].to_version_string == "1.2.0"

    def test_edge_identity(self, make_registry, repo_config, task_context):
        dep = RawDependency(
            target_type="fake",
            target={"repo": "git@github.com:x/lib.git", "unit": "lib"},
            from_unit="app",
            from_unit_type="fake_package",
        )
        edges = asyncio.run(
            DependencyResolver(make_registry()).resolve_all([dep], repo_config, task_context)
        )

        assert edges == [
            ResolvedDep(
                from_repo="example.com/me/project",
                from_unit="app",
                from_unit_type="fake_package",
                to_repo="github.com/x/lib",
                to_repo_clone_url="git@github.com:x/lib.git",
                to_unit="lib",
                to_unit_type="fake_package",
            )
        ]

    def test_error_aborts_without_partial_result(self, make_registry, repo_config, task_context):
        fake = FakeResolver()
        deps = [
            fake_dep("a", repo="https://github.com/x/a"),
            fake_dep("a", error="registry unreachable"),
            fake_dep("a", repo="https://github.com/x/c"),
        ]
        resolver = DependencyResolver(make_registry(resolver=fake))

        with pytest.raises(ToolFailedError, match="registry unreachable"):
            asyncio.run(resolver.resolve_all(deps, repo_config, task_context))
        # fail-fast: the third dependency is never attempted
        assert len(fake.seen) == 2

    def test_unknown_target_type(self, make_registry, repo_config, task_context):
        deps = [
            fake_dep("a", repo="https://github.com/x/a"),
            RawDependency("pip", {"name": "six"}),
        ]
        resolver = DependencyResolver(make_registry())

        with pytest.raises(NoResolverError, match="'pip'") as exc_info:
            asyncio.run(resolver.resolve_all(deps, repo_config, task_context))
        assert isinstance(exc_info.value, NoPluginError)
        assert exc_info.value.key == "pip"

    def test_empty_input(self, make_registry, repo_config, task_context):
        resolver = DependencyResolver(make_registry())
        assert asyncio.run(resolver.resolve_all([], repo_config, task_context)) == []


class TestResolve:
    def test_single_resolution_result(self, make_registry, repo_config, task_context):
        resolver = DependencyResolver(make_registry())
        result = asyncio.run(resolver.resolve(fake_dep(), repo_config, task_context))
        assert result == Unresolved("no repository")

    def test_resolver_returning_none_is_rejected(self, repo_config, task_context):
        class Lazy(Resolver):
            async def resolve(self, dep, config, ctx):
                return None

        registry = RegistryBuilder().register_resolver("lazy", Lazy()).build()
        with pytest.raises(TypeError, match="expected ResolvedTarget or Unresolved"):
            asyncio.run(
                DependencyResolver(registry).resolve(
                    RawDependency("lazy"), repo_config, task_context
                )
            )

    def test_resolved_target_requires_clone_url(self):
        with pytest.raises(ValueError, match="to_repo_clone_url"):
            ResolvedTarget(to_repo_clone_url="")


class TestSandboxResolver:
    def test_builder_answers_directly(self, repo_config, task_context):
        def build(dep, config, ctx):
            return ResolvedTarget(to_repo_clone_url=dep.target["url"])

        resolver = SandboxResolver(build)
        dep = RawDependency("url", {"url": "https://github.com/a/b"})
        result = asyncio.run(resolver.resolve(dep, repo_config, task_context))
        assert result.to_repo_clone_url == "https://github.com/a/b"

    def test_tool_output_decoded(self, repo_config, task_context):
        payload = {"to_repo_clone_url": "https://github.com/a/b", "to_rev_spec": "v1.0"}

        def build(dep, config, ctx):
            code = f"print({json.dumps(json.dumps(payload))})"
            return Command(Container([sys.executable, "-c", code]), label="resolver")

        result = asyncio.run(
            SandboxResolver(build).resolve(RawDependency("x"), repo_config, task_context)
        )
        assert result == ResolvedTarget("https://github.com/a/b", to_rev_spec="v1.0")

    def test_null_tool_output_is_unresolved(self, repo_config, task_context):
        def build(dep, config, ctx):
            return Command(Container([sys.executable, "-c", "print('null')"]))

        result = asyncio.run(
            SandboxResolver(build).resolve(RawDependency("x"), repo_config, task_context)
        )
        assert isinstance(result, Unresolved)

    def test_target_without_clone_url_is_schema_mismatch(self, repo_config, task_context):
        def build(dep, config, ctx):
            return Command(Container([sys.executable, "-c", "print('{\"to_unit\": \"x\"}')"]))

        with pytest.raises(SchemaMismatchError):
            asyncio.run(
                SandboxResolver(build).resolve(RawDependency("x"), repo_config, task_context)
            )


class TestListDependencies:
    def test_lister_dispatched_by_variant(self, make_registry, repo_config, task_context):
        registry = make_registry(deps={"app": [fake_dep(repo="https://github.com/x/lib")]})
        deps = asyncio.run(
            list_dependencies(
                registry, repo_config.root_dir, FakePackage("app"), repo_config, task_context
            )
        )
        assert len(deps) == 1
        assert deps[0].from_unit == "app"
        assert deps[0].from_unit_type == "fake_package"

    def test_attribution_kept_when_set(self, make_registry, repo_config, task_context):
        dep = RawDependency("fake", {}, from_unit="other", from_unit_type="fake_module")
        registry = make_registry(deps={"app": [dep]})
        deps = asyncio.run(
            list_dependencies(
                registry, repo_config.root_dir, FakePackage("app"), repo_config, task_context
            )
        )
        assert (deps[0].from_unit, deps[0].from_unit_type) == ("other", "fake_module")

    def test_no_lister_for_variant(self, make_registry, repo_config, task_context):
        with pytest.raises(NoPluginError, match="no lister registered"):
            asyncio.run(
                list_dependencies(
                    make_registry(),
                    repo_config.root_dir,
                    FakeModule("m"),
                    repo_config,
                    task_context,
                )
            )


class TestRawDependencyPayload:
    """Each resolver decodes its own target payload."""

    def test_decode_target(self):
        dep = fake_dep(repo="https://github.com/x/y", unit="y")
        assert dep.decode_target(FakeTarget) == FakeTarget(repo="https://github.com/x/y", unit="y")

    def test_decode_target_unexpected_field(self):
        dep = RawDependency("fake", {"repo": "r", "branch": "main"})
        with pytest.raises(SchemaMismatchError, match="unexpected fields \\['branch'\\]"):
            dep.decode_target(FakeTarget)

    def test_decode_target_not_an_object(self):
        with pytest.raises(SchemaMismatchError, match="must be an object"):
            RawDependency("fake", "just a string").decode_target(FakeTarget)

    def test_decode_target_missing_required_field(self):
        @dataclass
        class NpmTarget:
            name: str
            version_spec: str = ""

        with pytest.raises(SchemaMismatchError, match="npm dependency target"):
            RawDependency("npm", {"version_spec": "^1.0"}).decode_target(NpmTarget)

    def test_decode_raw_dependencies(self):
        raw = [{"target_type": "fake", "target": {"repo": "r"}, "from_file": "a/b.py"}]
        assert decode_raw_dependencies(raw) == [
            RawDependency("fake", {"repo": "r"}, from_file="a/b.py")
        ]
        assert decode_raw_dependencies(None) == []
        with pytest.raises(SchemaMismatchError):
            decode_raw_dependencies({"target_type": "fake"})
