"""Strict decoding of JSON objects into dataclasses."""

import dataclasses
from typing import Any, TypeVar

from unitgraph.errors import SchemaMismatchError

T = TypeVar("T")


def decode_dataclass(cls: type[T], data: Any, what: str) -> T:
    """Build ``cls`` from a JSON object, rejecting non-objects and unknown fields.

    ``what`` names the value in error messages, e.g. ``"symbol #3"``.
    """
    if not isinstance(data, dict):
        raise SchemaMismatchError(f"{what} must be an object, got {type(data).__name__}")
    known = {f.name for f in dataclasses.fields(cls) if f.init}
    unexpected = sorted(set(data) - known)
    if unexpected:
        raise SchemaMismatchError(f"{what} has unexpected fields {unexpected}")
    try:
        return cls(**data)
    except (TypeError, ValueError) as e:
        raise SchemaMismatchError(f"{what}: {e}") from e
