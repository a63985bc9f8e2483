"""Tests for build rule assembly and Makefile rendering."""

from pathlib import Path

import pytest

from conftest import FakePackage
from unitgraph.build.makers import (
    DEPS_SUFFIX,
    GRAPH_SUFFIX,
    MKDIR_RECIPE,
    RAW_DEPS_SUFFIX,
    resolve_rules,
)
from unitgraph.build.rules import Makefile, Rule, create_makefile, escape_path
from unitgraph.errors import RuleMakerError


def static_maker(*targets):
    def maker(config, output_dir, existing):
        return [Rule(t, recipes=("touch $@",)) for t in targets]

    return maker


class TestCreateMakefile:
    """The all rule comes first, .DELETE_ON_ERROR last, makers in between."""

    def test_all_rule_depends_on_every_target(self, repo_config):
        makers = [("one", static_maker("t1", "t2")), ("two", static_maker("t3"))]
        mf = create_makefile("build", repo_config, makers)

        assert mf.targets == ["all", "t1", "t2", "t3", ".DELETE_ON_ERROR"]
        assert mf.rules[0].prereqs == ("t1", "t2", "t3")

    def test_delete_on_error_rendered_last(self, repo_config):
        rendered = create_makefile("build", repo_config, []).render()
        assert rendered == "all:\n\n.DELETE_ON_ERROR:\n"

    def test_later_makers_see_earlier_rules(self, repo_config):
        seen = []

        def inspecting(config, output_dir, existing):
            seen.append(existing)
            return []

        create_makefile(
            "build", repo_config, [("first", static_maker("a", "b")), ("second", inspecting)]
        )
        assert isinstance(seen[0], tuple)
        assert [r.target for r in seen[0]] == ["a", "b"]

    def test_maker_failure_names_the_maker(self, repo_config):
        def broken(config, output_dir, existing):
            raise KeyError("missing unit")

        makers = [("ok", static_maker("a")), ("deps.broken", broken)]
        with pytest.raises(RuleMakerError, match="rule maker deps.broken: ") as exc_info:
            create_makefile("build", repo_config, makers)
        assert isinstance(exc_info.value.cause, KeyError)


class TestBuiltinMakers:
    @pytest.fixture
    def config(self, repo_config):
        return repo_config.with_units(
            [
                FakePackage("a", "a", ["a/a.py", "a/util.py"]),
                FakePackage("b", "b", ["b/b.py"]),
            ]
        )

    def test_stage_targets(self, make_registry, config):
        registry = make_registry()
        mf = create_makefile(Path("out"), config, registry.rule_makers.items())

        assert mf.targets == [
            "all",
            "out/a@fake_package" + GRAPH_SUFFIX,
            "out/b@fake_package" + GRAPH_SUFFIX,
            "out/a@fake_package" + RAW_DEPS_SUFFIX,
            "out/b@fake_package" + RAW_DEPS_SUFFIX,
            "out/a@fake_package" + DEPS_SUFFIX,
            "out/b@fake_package" + DEPS_SUFFIX,
            ".DELETE_ON_ERROR",
        ]

    def test_graph_rule(self, make_registry, config):
        mf = create_makefile("out", config, make_registry().rule_makers.items())
        rule = mf.rule("out/a@fake_package.graph.json")

        assert rule.prereqs == ("a/a.py", "a/util.py")
        assert rule.recipes == (
            MKDIR_RECIPE,
            "unitgraph graph --json --no-summary a@fake_package 1> $@",
        )

    def test_resolve_rule_chains_on_raw_deps(self, make_registry, config):
        mf = create_makefile("out", config, make_registry().rule_makers.items())
        rule = mf.rule("out/b@fake_package.deps.json")

        assert rule.prereqs == ("out/b@fake_package.rawdeps.json",)
        assert rule.recipes == ("unitgraph deps resolve --json --from-file $< 1> $@",)

    def test_resolve_rules_ignore_other_targets(self, repo_config):
        existing = (Rule("x.graph.json"), Rule("x.rawdeps.json"))
        assert [r.target for r in resolve_rules(repo_config, Path("out"), existing)] == [
            "x.deps.json"
        ]

    def test_unit_ids_quoted_in_recipes(self, make_registry, repo_config):
        config = repo_config.with_units([FakePackage("my lib", files=["x.py"])])
        mf = create_makefile("out", config, make_registry().rule_makers.items())
        recipe = mf.rule("out/my lib@fake_package.rawdeps.json").recipes[1]
        assert recipe == "unitgraph deps list --json 'my lib@fake_package' 1> $@"


class TestRender:
    def test_rule_layout(self):
        mf = Makefile([Rule("out/a.json", ["a.py", "b.py"], ["@mkdir -p $(@D)", "tool > $@"])])
        assert mf.render() == "out/a.json: a.py b.py\n\t@mkdir -p $(@D)\n\ttool > $@\n"

    def test_escape_path(self):
        assert escape_path("dir with space/a:b#c$d") == "dir\\ with\\ space/a\\:b\\#c$$d"

    def test_targets_escaped(self):
        rendered = Makefile([Rule("out/my lib.json", ["my lib/x.py"])]).render()
        assert rendered == "out/my\\ lib.json: my\\ lib/x.py\n"

    def test_write(self, tmp_path):
        path = Makefile([Rule("all")]).write(tmp_path / "build" / "Makefile")
        assert path.read_text() == "all:\n"
