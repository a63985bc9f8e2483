"""Tests for job setup, scanning and bounded concurrency."""

import asyncio

import pytest

from conftest import FakeModule, FakePackage, StaticScanner
from unitgraph.context import JobContext, map_concurrently
from unitgraph.errors import DuplicateUnitError, ToolFailedError
from unitgraph.registry import RegistryBuilder
from unitgraph.sandbox.runner import ProcessRunner
from unitgraph.scan import scan_repository


class TestMapConcurrently:
    def test_results_keep_input_order(self):
        async def slow_echo(n):
            await asyncio.sleep(0.01 * (5 - n))
            return n * 10

        assert asyncio.run(map_concurrently(slow_echo, [1, 2, 3, 4], 4)) == [10, 20, 30, 40]

    def test_limit_bounds_in_flight_calls(self):
        in_flight = 0
        peak = 0

        async def track(n):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return n

        asyncio.run(map_concurrently(track, list(range(10)), 3))
        assert peak == 3

    def test_first_failure_raised_unwrapped(self):
        async def fail_on_two(n):
            if n == 2:
                raise ToolFailedError(1, "broken unit")
            return n

        with pytest.raises(ToolFailedError, match="broken unit"):
            asyncio.run(map_concurrently(fail_on_two, [1, 2, 3], 2))

    def test_empty_input(self):
        async def never(n):
            raise AssertionError("not called")

        assert asyncio.run(map_concurrently(never, [], 4)) == []


class TestScanRepository:
    def test_scanners_merged_in_registration_order(self, repo_config, task_context):
        builder = RegistryBuilder()
        builder.register_variant("fake_package", FakePackage)
        builder.register_variant("fake_module", FakeModule)
        builder.register_scanner("packages", StaticScanner([FakePackage("a"), FakePackage("b")]))
        builder.register_scanner("modules", StaticScanner([FakeModule("a")]))
        registry = builder.build()

        units = asyncio.run(
            scan_repository(registry, repo_config.root_dir, repo_config, task_context)
        )
        assert units == [FakePackage("a"), FakePackage("b"), FakeModule("a")]

    def test_same_unit_from_two_scanners(self, repo_config, task_context):
        builder = RegistryBuilder()
        builder.register_variant("fake_package", FakePackage)
        builder.register_scanner("one", StaticScanner([FakePackage("a")]))
        builder.register_scanner("two", StaticScanner([FakePackage("a", dir="elsewhere")]))
        registry = builder.build()

        with pytest.raises(DuplicateUnitError, match="a@fake_package reported twice"):
            asyncio.run(
                scan_repository(registry, repo_config.root_dir, repo_config, task_context)
            )


class TestJobContext:
    def create(self, root, registry, **kwargs):
        return asyncio.run(
            JobContext.create(root, registry=registry, runner=ProcessRunner(), **kwargs)
        )

    def test_scanned_units(self, sample_repo, make_registry):
        registry = make_registry(units=[FakePackage("a", "a"), FakePackage("b", "b")])
        job = self.create(sample_repo, registry)

        assert job.repo.uri == "github.com/example/project"
        assert [u.name for u in job.repo.source_units] == ["a", "b"]
        assert job.task.timeout("graph") == 1800.0

    def test_declared_units_skip_scanning(self, sample_repo, make_registry):
        (sample_repo / ".unitgraph.yml").write_text(
            "source_units:\n  - type: fake_module\n    data: {module: m, files: [b/b.py]}\n"
        )
        job = self.create(sample_repo, make_registry(units=[FakePackage("a")]))
        assert job.repo.source_units == (FakeModule("m", ["b/b.py"]),)

    def test_no_scan(self, sample_repo, make_registry):
        job = self.create(sample_repo, make_registry(units=[FakePackage("a")]), scan=False)
        assert job.repo.source_units == ()

    def test_skip_units_applied(self, sample_repo, make_registry):
        (sample_repo / ".unitgraph.yml").write_text("skip_units: [a@fake_package]\n")
        registry = make_registry(units=[FakePackage("a"), FakePackage("b")])
        job = self.create(sample_repo, registry)
        assert [job.unit_id(u) for u in job.repo.source_units] == ["b@fake_package"]

    def test_select_units(self, sample_repo, make_registry):
        registry = make_registry(units=[FakePackage("a"), FakePackage("b"), FakeModule("a")])
        job = self.create(sample_repo, registry)

        assert job.select_units([]) == list(job.repo.source_units)
        assert job.select_units(["a@fake_module"]) == [FakeModule("a")]
        assert job.select_units(["a"]) == [FakePackage("a"), FakeModule("a")]
        assert job.select_units(["zzz"]) == []
