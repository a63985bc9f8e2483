"""Canonical symbol/reference/documentation output every grapher produces."""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from unitgraph.errors import SchemaMismatchError
from unitgraph.utils.schema import decode_dataclass


class SymbolKey(NamedTuple):
    """Globally unique address of a symbol."""

    repo: str
    unit: str
    unit_type: str
    path: str


@dataclass
class Symbol:
    path: str
    name: str = ""
    kind: str = ""
    repo: str = ""
    unit: str = ""
    unit_type: str = ""
    type_expr: str = ""
    file: str = ""
    def_start: int = 0
    def_end: int = 0
    exported: bool = False
    callable: bool = False
    # language-specific refinements of kind and path, for display
    specific_kind: str = ""
    specific_path: str = ""

    @property
    def key(self) -> SymbolKey:
        return SymbolKey(self.repo, self.unit, self.unit_type, self.path)


@dataclass
class Ref:
    """A located reference to the symbol at ``symbol_*``."""

    symbol_path: str
    symbol_repo: str = ""
    symbol_unit: str = ""
    symbol_unit_type: str = ""
    is_def: bool = False
    repo: str = ""
    unit: str = ""
    unit_type: str = ""
    file: str = ""
    start: int = 0
    end: int = 0

    @property
    def symbol_key(self) -> SymbolKey:
        return SymbolKey(
            self.symbol_repo, self.symbol_unit, self.symbol_unit_type, self.symbol_path
        )


@dataclass
class Doc:
    path: str
    repo: str = ""
    unit: str = ""
    unit_type: str = ""
    format: str = ""
    data: str = ""
    file: str = ""
    start: int = 0
    end: int = 0

    @property
    def key(self) -> SymbolKey:
        return SymbolKey(self.repo, self.unit, self.unit_type, self.path)


@dataclass
class Output:
    symbols: list[Symbol] = field(default_factory=list)
    refs: list[Ref] = field(default_factory=list)
    docs: list[Doc] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Canonical JSON form; empty lists are omitted."""
        out: dict[str, Any] = {}
        for name in ("symbols", "refs", "docs"):
            items = getattr(self, name)
            if items:
                out[name] = [dataclasses.asdict(item) for item in items]
        return out

    @classmethod
    def from_dict(cls, value: Any) -> "Output":
        """Decode canonical JSON; ``null`` decodes to an empty output."""
        if value is None:
            return cls()
        if not isinstance(value, dict):
            raise SchemaMismatchError(
                f"grapher output must be an object, got {type(value).__name__}"
            )
        unexpected = sorted(set(value) - {"symbols", "refs", "docs"})
        if unexpected:
            raise SchemaMismatchError(f"grapher output has unexpected fields {unexpected}")

        def items(name, item_cls, what):
            raw = value.get(name) or []
            if not isinstance(raw, list):
                raise SchemaMismatchError(f"grapher output {name} must be a list")
            return [decode_dataclass(item_cls, v, f"{what} #{i}") for i, v in enumerate(raw)]

        return cls(
            symbols=items("symbols", Symbol, "symbol"),
            refs=items("refs", Ref, "ref"),
            docs=items("docs", Doc, "doc"),
        )
