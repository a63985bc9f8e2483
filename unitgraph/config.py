"""Repository configuration loading (.unitgraph.yml)."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from unitgraph.errors import ConfigError, SchemaMismatchError
from unitgraph.repo import make_uri
from unitgraph.unit import SourceUnit, UnitRegistry
from unitgraph.utils.constants import REPO_CONFIG_FILE
from unitgraph.utils.logging import logger


@dataclass(frozen=True)
class RepoConfig:
    """The repository being analyzed, fixed for the duration of one run."""

    uri: str
    root_dir: str
    clone_url: str = ""
    source_units: tuple[SourceUnit, ...] = ()
    # per-toolchain settings, opaque to the core
    toolchains: Mapping[str, Any] = field(default_factory=dict)
    # unit IDs excluded from every operation
    skip_units: tuple[str, ...] = ()

    def with_units(self, units: Iterable[SourceUnit]) -> RepoConfig:
        return dataclasses.replace(self, source_units=tuple(units))

    def toolchain_config(self, name: str) -> Mapping[str, Any]:
        return self.toolchains.get(name) or {}


def load_repo_config(root: str | Path, units: UnitRegistry) -> RepoConfig:
    """Load ``<root>/.unitgraph.yml``.

    A missing file yields a configuration whose URI is the directory name.
    Source units listed in the file are decoded with ``units``.
    """
    root_path = Path(root).resolve()
    config_file = root_path / REPO_CONFIG_FILE

    data: Any = {}
    if config_file.exists():
        data = _read_config(config_file)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"{REPO_CONFIG_FILE} must contain a mapping at the root")
    else:
        logger.debug(f"No {REPO_CONFIG_FILE} in {root_path}, using defaults")

    clone_url = _as_str(data.get("clone_url"), "clone_url")
    uri = _as_str(data.get("uri"), "uri")
    if not uri and clone_url:
        try:
            uri = make_uri(clone_url)
        except ValueError as e:
            raise ConfigError(f"{REPO_CONFIG_FILE}: {e}") from e
    if not uri:
        uri = root_path.name

    try:
        source_units = units.decode_units(data.get("source_units"))
    except SchemaMismatchError as e:
        raise ConfigError(f"{REPO_CONFIG_FILE} source_units: {e}") from e

    toolchains = data.get("toolchains") or {}
    if not isinstance(toolchains, dict) or not all(
        isinstance(v, dict) or v is None for v in toolchains.values()
    ):
        raise ConfigError(f"{REPO_CONFIG_FILE} toolchains must map toolchain names to mappings")

    return RepoConfig(
        uri=uri,
        root_dir=str(root_path),
        clone_url=clone_url,
        source_units=tuple(source_units),
        toolchains=MappingProxyType(dict(toolchains)),
        skip_units=tuple(_as_str_list(data.get("skip_units"), "skip_units")),
    )


def _read_config(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e


def _as_str(value: Any, key: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{REPO_CONFIG_FILE} {key} must be a string")
    return value.strip()


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigError(f"{REPO_CONFIG_FILE} {key} must be a string or a list of strings")
