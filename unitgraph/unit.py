"""Source units: typed identity, variant registry and addressing.

A source unit is one analyzable subdivision of a repository (a package, a
module, ...). Each concrete unit class is a *variant*, registered once under a
name. A unit's ID is ``<name>@<variant>``; ``@`` is reserved as the separator
and may not appear in variant names, so unit names containing it still
round-trip through :func:`parse_id`.
"""

import dataclasses
import glob
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Any, NewType

from unitgraph.errors import (
    ConfigurationError,
    InvalidUnitIDError,
    SchemaMismatchError,
    UnknownVariantError,
)

UnitID = NewType("UnitID", str)

ID_SEPARATOR = "@"


class SourceUnit(ABC):
    """Contract every source unit variant satisfies.

    Concrete variants are normally dataclasses; the default ``to_dict`` and
    ``from_dict`` rely on that.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier unique among units of the same variant in one repository."""

    @property
    @abstractmethod
    def root_dir(self) -> str:
        """Deepest directory containing every file of this unit."""

    @property
    @abstractmethod
    def paths(self) -> list[str]:
        """Every file path this unit comprises."""

    def to_dict(self) -> dict[str, Any]:
        if dataclasses.is_dataclass(self):
            return dataclasses.asdict(self)
        raise TypeError(f"{type(self).__name__} must implement to_dict()")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SourceUnit":
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls.__name__} must implement from_dict()")
        known = {f.name for f in dataclasses.fields(cls) if f.init}
        unexpected = sorted(set(data) - known)
        if unexpected:
            raise TypeError(f"unexpected fields {unexpected}")
        return cls(**data)


class UnitRegistry:
    """Bidirectional mapping between variant names and unit classes.

    Filled during process wiring, read-only afterwards.
    """

    def __init__(self):
        self._types: dict[str, type[SourceUnit]] = {}
        self._names: dict[type[SourceUnit], str] = {}
        self._frozen = False

    def freeze(self) -> None:
        self._frozen = True

    def register_variant(self, name: str, variant: type[SourceUnit]) -> None:
        """Make a source unit class available under ``name``.

        Raises ConfigurationError when name is empty or contains the ID
        separator, when variant is missing or not a SourceUnit class, or when
        either the name or the class is already registered.
        """
        if self._frozen:
            raise ConfigurationError(
                f"unit: register_variant({name!r}) after the registry was built"
            )
        if not name:
            raise ConfigurationError("unit: register_variant name is empty")
        if ID_SEPARATOR in name:
            raise ConfigurationError(
                f"unit: variant name {name!r} contains reserved separator {ID_SEPARATOR!r}"
            )
        if variant is None:
            raise ConfigurationError("unit: register_variant variant is None")
        if not (isinstance(variant, type) and issubclass(variant, SourceUnit)):
            raise ConfigurationError(
                f"unit: register_variant expects a SourceUnit subclass, got {variant!r}"
            )
        if name in self._types:
            raise ConfigurationError(f"unit: register_variant called twice for variant name {name}")
        if variant in self._names:
            raise ConfigurationError(
                f"unit: register_variant called twice for type {variant.__qualname__}"
            )
        self._types[name] = variant
        self._names[variant] = name

    @property
    def variants(self) -> Mapping[str, type[SourceUnit]]:
        return MappingProxyType(self._types)

    def is_registered(self, name: str) -> bool:
        return name in self._types

    def variant_of(self, unit: SourceUnit) -> str:
        try:
            return self._names[type(unit)]
        except KeyError:
            raise UnknownVariantError(
                f"source unit type {type(unit).__qualname__} is not a registered variant"
            ) from None

    def type_of(self, name: str) -> type[SourceUnit]:
        try:
            return self._types[name]
        except KeyError:
            raise UnknownVariantError(f"no source unit variant registered as {name!r}") from None

    def make_id(self, unit: SourceUnit) -> UnitID:
        return make_id(unit.name, self.variant_of(unit))

    def encode_units(self, units: Iterable[SourceUnit]) -> list[dict[str, Any]]:
        """Variant-tagged JSON-ready form of a unit list."""
        return [{"type": self.variant_of(u), "data": u.to_dict()} for u in units]

    def decode_units(self, value: Any) -> list[SourceUnit]:
        """Inverse of encode_units; ``None`` decodes to an empty list."""
        if value is None:
            return []
        if not isinstance(value, list):
            raise SchemaMismatchError(f"source units must be a list, got {type(value).__name__}")
        units = []
        for i, item in enumerate(value):
            if not isinstance(item, dict) or "type" not in item:
                raise SchemaMismatchError(f"source unit #{i} is not a tagged object: {item!r}")
            try:
                cls = self.type_of(item["type"])
            except UnknownVariantError as e:
                raise SchemaMismatchError(f"source unit #{i}: {e}") from e
            data = item.get("data") or {}
            if not isinstance(data, dict):
                raise SchemaMismatchError(f"source unit #{i} data is not an object")
            try:
                units.append(cls.from_dict(data))
            except (TypeError, ValueError) as e:
                raise SchemaMismatchError(f"source unit #{i} ({item['type']}): {e}") from e
        return units


def make_id(name: str, variant: str) -> UnitID:
    return UnitID(f"{name}{ID_SEPARATOR}{variant}")


def parse_id(unit_id: str) -> tuple[str, str]:
    """Split a unit ID into ``(name, variant)``."""
    name, sep, variant = unit_id.rpartition(ID_SEPARATOR)
    if not sep:
        raise InvalidUnitIDError(f"no {ID_SEPARATOR!r} in source unit ID {unit_id!r}")
    if not name or not variant:
        raise InvalidUnitIDError(f"source unit ID {unit_id!r} has an empty name or variant")
    return name, variant


def expand_paths(base: str, patterns: Sequence[str]) -> list[str]:
    """Expand base-relative glob patterns into the files they reference.

    Patterns matching nothing contribute nothing. Wildcards match dotfiles.
    Hits for each pattern are sorted; pattern order is kept.
    """
    expanded: list[str] = []
    for pattern in patterns:
        expanded.extend(sorted(glob.glob(os.path.join(base, pattern), include_hidden=True)))
    return expanded


def unit_matches_args(specs: Sequence[str], unit: SourceUnit, registry: UnitRegistry) -> bool:
    """True when no filter is given or the unit's ID or name is listed."""
    if not specs:
        return True
    return registry.make_id(unit) in specs or unit.name in specs
