"""Graph package - canonical symbol/ref/doc output and graphers."""

from .grapher import Grapher, SandboxGrapher, check_unique_symbol_paths, graph_unit
from .model import Doc, Output, Ref, Symbol, SymbolKey

__all__ = [
    "Doc",
    "Grapher",
    "Output",
    "Ref",
    "SandboxGrapher",
    "Symbol",
    "SymbolKey",
    "check_unique_symbol_paths",
    "graph_unit",
]
