"""Build rule graph assembly."""

from .rules import Makefile, Rule, RuleMaker, create_makefile

__all__ = ["Makefile", "Rule", "RuleMaker", "create_makefile"]
