"""Built-in rule makers for the scan -> list -> resolve -> graph stages."""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from unitgraph.build.rules import Rule, RuleMaker
from unitgraph.unit import UnitRegistry

if TYPE_CHECKING:
    from unitgraph.config import RepoConfig
    from unitgraph.registry import RegistryBuilder

CLI_NAME = "unitgraph"

GRAPH_SUFFIX = ".graph.json"
RAW_DEPS_SUFFIX = ".rawdeps.json"
DEPS_SUFFIX = ".deps.json"

MKDIR_RECIPE = "@mkdir -p $(@D)"


def _cli(*args: str) -> str:
    # $ must be doubled in recipes or make expands it
    command = " ".join(shlex.quote(a) for a in (CLI_NAME, *args))
    return command.replace("$", "$$")


def unit_target(output_dir: Path, unit_id: str, suffix: str) -> str:
    return str(output_dir / f"{unit_id}{suffix}")


def make_graph_rules(units: UnitRegistry) -> RuleMaker:
    def graph_rules(config: RepoConfig, output_dir: Path, existing: Sequence[Rule]) -> list[Rule]:
        rules = []
        for unit in config.source_units:
            unit_id = units.make_id(unit)
            rules.append(
                Rule(
                    unit_target(output_dir, unit_id, GRAPH_SUFFIX),
                    prereqs=tuple(unit.paths),
                    recipes=(
                        MKDIR_RECIPE,
                        _cli("graph", "--json", "--no-summary", unit_id) + " 1> $@",
                    ),
                )
            )
        return rules

    return graph_rules


def make_list_rules(units: UnitRegistry) -> RuleMaker:
    def list_rules(config: RepoConfig, output_dir: Path, existing: Sequence[Rule]) -> list[Rule]:
        rules = []
        for unit in config.source_units:
            unit_id = units.make_id(unit)
            rules.append(
                Rule(
                    unit_target(output_dir, unit_id, RAW_DEPS_SUFFIX),
                    prereqs=tuple(unit.paths),
                    recipes=(MKDIR_RECIPE, _cli("deps", "list", "--json", unit_id) + " 1> $@"),
                )
            )
        return rules

    return list_rules


def resolve_rules(config: RepoConfig, output_dir: Path, existing: Sequence[Rule]) -> list[Rule]:
    """One resolution rule per raw dependency list produced by an earlier maker."""
    rules = []
    for rule in existing:
        if not rule.target.endswith(RAW_DEPS_SUFFIX):
            continue
        target = rule.target[: -len(RAW_DEPS_SUFFIX)] + DEPS_SUFFIX
        rules.append(
            Rule(
                target,
                prereqs=(rule.target,),
                recipes=(_cli("deps", "resolve", "--json", "--from-file") + " $< 1> $@",),
            )
        )
    return rules


def register_builtin_rule_makers(builder: RegistryBuilder) -> None:
    builder.register_rule_maker("graph", make_graph_rules(builder.units))
    builder.register_rule_maker("deps.list", make_list_rules(builder.units))
    builder.register_rule_maker("deps.resolve", resolve_rules)
