"""Build rule graph assembly.

Rule makers each contribute file-producing rules for one analysis stage. They
run in registration order, and each sees the rules of the makers before it so
a later stage can depend on an earlier stage's output file.

The assembled graph always starts with an ``all`` rule depending on every
target and ends with ``.DELETE_ON_ERROR``: recipes write their target with
``1> $@``, and a recipe failing halfway must not leave a truncated file that
a later run would take for a finished one.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from unitgraph.errors import RuleMakerError
from unitgraph.utils.logging import logger

if TYPE_CHECKING:
    from unitgraph.config import RepoConfig

ALL_TARGET = "all"
DELETE_ON_ERROR = ".DELETE_ON_ERROR"


@dataclass(frozen=True)
class Rule:
    target: str
    prereqs: tuple[str, ...] = ()
    recipes: tuple[str, ...] = ()

    def __post_init__(self):
        # accept lists from callers, store tuples
        object.__setattr__(self, "prereqs", tuple(self.prereqs))
        object.__setattr__(self, "recipes", tuple(self.recipes))


RuleMaker = Callable[["RepoConfig", Path, Sequence[Rule]], list[Rule]]


def escape_path(path: str) -> str:
    """Escape a file name for use as a make target or prerequisite."""
    return path.replace("$", "$$").replace(" ", "\\ ").replace(":", "\\:").replace("#", "\\#")


@dataclass
class Makefile:
    rules: list[Rule] = field(default_factory=list)

    @property
    def targets(self) -> list[str]:
        return [rule.target for rule in self.rules]

    def rule(self, target: str) -> Rule | None:
        for rule in self.rules:
            if rule.target == target:
                return rule
        return None

    def render(self) -> str:
        chunks = []
        for rule in self.rules:
            head = f"{escape_path(rule.target)}:"
            if rule.prereqs:
                head += " " + " ".join(escape_path(p) for p in rule.prereqs)
            lines = [head] + [f"\t{recipe}" for recipe in rule.recipes]
            chunks.append("\n".join(lines))
        return "\n\n".join(chunks) + "\n"

    def write(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        return path


def create_makefile(
    output_dir: str | Path,
    config: RepoConfig,
    rule_makers: Iterable[tuple[str, RuleMaker]],
) -> Makefile:
    """Fold the rule makers, in order, into one Makefile.

    The first failing maker aborts assembly with a RuleMakerError naming it.
    """
    output_dir = Path(output_dir)
    all_rules: list[Rule] = []
    for name, maker in rule_makers:
        try:
            rules = maker(config, output_dir, tuple(all_rules))
        except Exception as e:
            raise RuleMakerError(name, e) from e
        logger.debug(f"rule maker {name} produced {len(rules)} rule(s)")
        all_rules.extend(rules)

    all_rule = Rule(ALL_TARGET, prereqs=tuple(rule.target for rule in all_rules))
    return Makefile([all_rule, *all_rules, Rule(DELETE_ON_ERROR)])
