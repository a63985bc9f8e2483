"""Plugin registries, wired once at startup and read-only afterwards.

Toolchains contribute plugins by calling :class:`RegistryBuilder` methods.
Installed toolchains are discovered through the ``unitgraph.toolchains``
entry point group; each entry point is a callable taking the builder:

    [project.entry-points."unitgraph.toolchains"]
    npm = "unitgraph_npm:register"

Registering a key twice, or registering ``None``, raises ConfigurationError
immediately. Looking up a key nobody registered raises NoPluginError.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from importlib.metadata import EntryPoint, entry_points
from types import MappingProxyType
from typing import TYPE_CHECKING, Generic, TypeVar

from unitgraph.build.makers import register_builtin_rule_makers
from unitgraph.errors import ConfigurationError, NoPluginError, NoResolverError
from unitgraph.unit import SourceUnit, UnitRegistry
from unitgraph.utils.constants import TOOLCHAIN_ENTRY_POINT_GROUP
from unitgraph.utils.logging import logger

if TYPE_CHECKING:
    from unitgraph.build.rules import RuleMaker
    from unitgraph.deps.lister import Lister
    from unitgraph.deps.resolver import Resolver
    from unitgraph.graph.grapher import Grapher
    from unitgraph.scan import Scanner

T = TypeVar("T")


class PluginRegistry(Generic[T]):
    """Ordered map from a discriminator key to exactly one implementation."""

    def __init__(self, kind: str, what: str = ""):
        self.kind = kind
        self.what = what
        self._plugins: dict[str, T] = {}
        self._frozen = False

    def register(self, key: str, impl: T) -> None:
        if self._frozen:
            raise ConfigurationError(f"{self.kind}: register({key!r}) after the registry was built")
        if not key:
            raise ConfigurationError(f"{self.kind}: register called with an empty key")
        if impl is None:
            raise ConfigurationError(f"{self.kind}: register {key!r} implementation is None")
        if key in self._plugins:
            raise ConfigurationError(f"{self.kind}: register called twice for {key}")
        self._plugins[key] = impl

    def get(self, key: str) -> T:
        try:
            return self._plugins[key]
        except KeyError:
            raise NoPluginError(self.kind, key, self.what) from None

    def freeze(self) -> None:
        self._frozen = True

    def keys(self) -> list[str]:
        return list(self._plugins)

    def items(self) -> Iterable[tuple[str, T]]:
        return MappingProxyType(self._plugins).items()

    def __contains__(self, key: object) -> bool:
        return key in self._plugins

    def __iter__(self) -> Iterator[str]:
        return iter(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)


@dataclass(frozen=True)
class Registry:
    """Immutable set of registries handed to every orchestration step."""

    units: UnitRegistry
    scanners: PluginRegistry[Scanner]
    listers: PluginRegistry[Lister]
    resolvers: PluginRegistry[Resolver]
    graphers: PluginRegistry[Grapher]
    rule_makers: PluginRegistry[RuleMaker]

    def lister_for(self, unit: SourceUnit) -> Lister:
        return self.listers.get(self.units.variant_of(unit))

    def grapher_for(self, unit: SourceUnit) -> Grapher:
        return self.graphers.get(self.units.variant_of(unit))

    def resolver_for(self, target_type: str) -> Resolver:
        if target_type not in self.resolvers:
            raise NoResolverError(target_type)
        return self.resolvers.get(target_type)

    @property
    def variants(self) -> Mapping[str, type[SourceUnit]]:
        return self.units.variants


class RegistryBuilder:
    """Collects registrations during process wiring, then builds a Registry."""

    def __init__(self):
        self.units = UnitRegistry()
        self.scanners: PluginRegistry[Scanner] = PluginRegistry("scanner", "scanner name")
        self.listers: PluginRegistry[Lister] = PluginRegistry("lister", "source unit variant")
        self.resolvers: PluginRegistry[Resolver] = PluginRegistry(
            "resolver", "raw dependency target type"
        )
        self.graphers: PluginRegistry[Grapher] = PluginRegistry("grapher", "source unit variant")
        self.rule_makers: PluginRegistry[RuleMaker] = PluginRegistry("rule maker", "name")
        self._built = False

    def register_variant(self, name: str, variant: type[SourceUnit]) -> RegistryBuilder:
        self.units.register_variant(name, variant)
        return self

    def register_scanner(self, name: str, scanner: Scanner) -> RegistryBuilder:
        self.scanners.register(name, scanner)
        return self

    def register_lister(self, variant: str, lister: Lister) -> RegistryBuilder:
        self.listers.register(variant, lister)
        return self

    def register_resolver(self, target_type: str, resolver: Resolver) -> RegistryBuilder:
        self.resolvers.register(target_type, resolver)
        return self

    def register_grapher(self, variant: str, grapher: Grapher) -> RegistryBuilder:
        self.graphers.register(variant, grapher)
        return self

    def register_rule_maker(self, name: str, maker: RuleMaker) -> RegistryBuilder:
        """Add a rule maker; makers run in the order they are registered."""
        self.rule_makers.register(name, maker)
        return self

    def build(self) -> Registry:
        """Validate the registrations and freeze them.

        Listers and graphers must be keyed by registered variants.
        """
        if self._built:
            raise ConfigurationError("registry: build() called twice")
        for kind, plugins in (("lister", self.listers), ("grapher", self.graphers)):
            for variant in plugins:
                if not self.units.is_registered(variant):
                    raise ConfigurationError(
                        f"registry: {kind} registered for unknown source unit variant {variant!r}"
                    )

        self.units.freeze()
        plugin_registries = (
            self.scanners,
            self.listers,
            self.resolvers,
            self.graphers,
            self.rule_makers,
        )
        for plugins in plugin_registries:
            plugins.freeze()
        self._built = True
        return Registry(
            units=self.units,
            scanners=self.scanners,
            listers=self.listers,
            resolvers=self.resolvers,
            graphers=self.graphers,
            rule_makers=self.rule_makers,
        )


Toolchain = Callable[[RegistryBuilder], None]


def load_toolchains(
    builder: RegistryBuilder, toolchains: Iterable[EntryPoint] | None = None
) -> list[str]:
    """Let every installed toolchain register its plugins.

    Returns the names of the toolchains loaded. A toolchain that fails to
    import or register is a wiring error and is not skipped.
    """
    if toolchains is None:
        toolchains = entry_points(group=TOOLCHAIN_ENTRY_POINT_GROUP)
    loaded = []
    for ep in sorted(toolchains, key=lambda ep: ep.name):
        logger.debug(f"Loading toolchain {ep.name} from {ep.value}")
        try:
            register = ep.load()
            register(builder)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"toolchain {ep.name}: {e}") from e
        loaded.append(ep.name)
    return loaded


def build_registry(extra: Iterable[Toolchain] = ()) -> Registry:
    """Wire the built-in rule makers, installed toolchains and ``extra``."""
    builder = RegistryBuilder()
    register_builtin_rule_makers(builder)
    loaded = load_toolchains(builder)
    for register in extra:
        register(builder)
    registry = builder.build()
    logger.debug(
        f"Registry built: toolchains={loaded} variants={list(registry.variants)} "
        f"rule_makers={registry.rule_makers.keys()}"
    )
    return registry
