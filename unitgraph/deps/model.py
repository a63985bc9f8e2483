"""Dependency data: raw descriptors, resolution results and resolved edges."""

import dataclasses
from dataclasses import dataclass
from typing import Any, TypeVar

from unitgraph.errors import SchemaMismatchError
from unitgraph.utils.schema import decode_dataclass

T = TypeVar("T")


@dataclass
class RawDependency:
    """An unresolved dependency descriptor emitted by a lister.

    ``target`` is opaque to the core: its shape is defined by whichever
    resolver is registered for ``target_type``, and only that resolver decodes
    it (see :meth:`decode_target`).
    """

    target_type: str
    target: Any = None
    from_unit: str = ""
    from_unit_type: str = ""
    from_file: str = ""

    def decode_target(self, cls: type[T]) -> T:
        """Decode ``target`` into the resolver-owned dataclass ``cls``."""
        return decode_dataclass(cls, self.target, f"{self.target_type} dependency target")

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "RawDependency":
        return decode_dataclass(cls, data, "raw dependency")


def decode_raw_dependencies(value: Any) -> list[RawDependency]:
    """Decode a lister's canonical JSON array; ``None`` means no dependencies."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise SchemaMismatchError(f"raw dependencies must be a list, got {type(value).__name__}")
    return [RawDependency.from_dict(item) for item in value]


@dataclass
class ResolvedTarget:
    """Where a raw dependency points.

    The clone URL is mandatory: the target repository's identity is derived
    from it.
    """

    to_repo_clone_url: str
    to_unit: str = ""
    to_unit_type: str = ""
    to_version_string: str = ""
    to_rev_spec: str = ""

    def __post_init__(self):
        if not isinstance(self.to_repo_clone_url, str) or not self.to_repo_clone_url.strip():
            raise ValueError("resolved target has no to_repo_clone_url")

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "ResolvedTarget":
        return decode_dataclass(cls, data, "resolved target")


@dataclass(frozen=True)
class Unresolved:
    """A dependency that was recognized but intentionally yields no edge."""

    reason: str = ""


ResolveResult = ResolvedTarget | Unresolved


def decode_resolve_result(value: Any) -> ResolveResult:
    """Decode a resolver's canonical JSON; ``null`` is :class:`Unresolved`."""
    if value is None:
        return Unresolved("resolver produced no target")
    return ResolvedTarget.from_dict(value)


@dataclass
class ResolvedDep:
    """A cross-repository dependency edge."""

    from_repo: str
    from_unit: str
    from_unit_type: str
    to_repo: str
    to_repo_clone_url: str
    to_unit: str = ""
    to_unit_type: str = ""
    to_version_string: str = ""
    to_rev_spec: str = ""

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "ResolvedDep":
        return decode_dataclass(cls, data, "resolved dependency")

