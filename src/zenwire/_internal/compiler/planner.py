from __future__ import annotations

from dataclasses import dataclass
from typing import assert_never

from zenwire._internal.definitions import (
    AutoloadedDefinition,
    ClassDefinition,
    ContextDependentDefinition,
    Definition,
    DefinitionGraph,
    ReferenceDefinition,
    SelfDefinition,
)
from zenwire._internal.identifiers import (
    definition_filename,
    factory_name,
    proxy_filename,
    proxy_name,
)
from zenwire.config import CompilerConfig
from zenwire.exceptions import ZenwireEmissionError


@dataclass(frozen=True, slots=True)
class FactoryPlan:
    """One graph definition and where its factory body is emitted."""

    identifier: str
    method_name: str
    definition: Definition
    filename: str | None
    """Auxiliary artifact holding the body, ``None`` for inline factories."""

    @property
    def emits_method(self) -> bool:
        """Whether the main artifact gets a method: inline bodies and file-based entry points."""
        return self.filename is None or self.definition.is_entry_point


@dataclass(frozen=True, slots=True)
class ProxyPlan:
    """Autoload proxy of one entry point."""

    definition: AutoloadedDefinition
    method_name: str
    target_method_name: str
    filename: str | None
    target_filename: str | None
    included_modules: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ContainerPlan:
    """Everything the renderer needs to emit one compiled container."""

    container_fqcn: str
    class_name: str
    definition_directory: str
    entry_points: tuple[tuple[str, str], ...]
    """Entry point identifier and the method name first registered for it, in declared order."""
    always_autoloaded_modules: tuple[str, ...]
    proxies: tuple[ProxyPlan, ...]
    factories: tuple[FactoryPlan, ...]
    cached_definition_count: int
    file_based_definition_count: int

    @property
    def definition_count(self) -> int:
        return len(self.factories)


class ContainerPlanner:
    """Derive the emission plan of a compiled container from a resolved graph."""

    def __init__(self, *, config: CompilerConfig, graph: DefinitionGraph) -> None:
        self._config = config
        self._graph = graph

    def build(self) -> ContainerPlan:
        factories = tuple(
            self._factory_plan(identifier, definition) for identifier, definition in self._graph.items()
        )

        entry_points: list[tuple[str, str]] = []
        proxies: list[ProxyPlan] = []
        for identifier in self._config.entry_point_map():
            definition = self._graph.get(identifier)
            if definition is None:
                continue
            if definition.is_autoloaded:
                proxy = self._proxy_plan(identifier, definition)
                proxies.append(proxy)
                entry_points.append((identifier, proxy.method_name))
            else:
                entry_points.append((identifier, factory_name(identifier)))

        _check_unique_names(factories, proxies)

        return ContainerPlan(
            container_fqcn=self._config.container_fqcn,
            class_name=self._config.container_class_name,
            definition_directory=self._config.file_based_definitions.relative_definition_directory,
            entry_points=tuple(entry_points),
            always_autoloaded_modules=_unique_ordered(
                [
                    self._module_of(identifier)
                    for identifier in self._config.autoload.always_autoloaded_classes
                ],
            ),
            proxies=tuple(proxies),
            factories=factories,
            cached_definition_count=sum(
                1 for factory in factories if is_cached_definition(factory.definition)
            ),
            file_based_definition_count=sum(
                1 for factory in factories if factory.filename is not None
            ),
        )

    def _factory_plan(self, identifier: str, definition: Definition) -> FactoryPlan:
        return FactoryPlan(
            identifier=identifier,
            method_name=factory_name(identifier),
            definition=definition,
            filename=definition_filename(identifier) if definition.is_file_based else None,
        )

    def _proxy_plan(self, identifier: str, definition: Definition) -> ProxyPlan:
        autoloaded = AutoloadedDefinition(
            identifier=identifier,
            is_file_based=definition.is_file_based,
        )
        return ProxyPlan(
            definition=autoloaded,
            method_name=proxy_name(identifier),
            target_method_name=factory_name(identifier),
            filename=proxy_filename(identifier) if autoloaded.is_file_based else None,
            target_filename=definition_filename(identifier) if definition.is_file_based else None,
            included_modules=self.included_modules(identifier),
        )

    def included_modules(self, identifier: str) -> tuple[str, ...]:
        """Return the modules to import before building an entry, dependencies first.

        Modules are collected by a post-order walk over class dependencies, so a
        module is listed after every module its classes depend on.
        """
        modules: list[str] = []
        visited: set[str] = set()
        self._collect_modules(identifier, consumer=None, visited=visited, modules=modules)
        return _unique_ordered(modules)

    def _collect_modules(
        self,
        identifier: str,
        *,
        consumer: str | None,
        visited: set[str],
        modules: list[str],
    ) -> None:
        if identifier in visited:
            return
        visited.add(identifier)

        definition = self._graph.get(identifier)
        if definition is None:
            msg = f"Definition of '{identifier}' required by '{consumer}' is missing from the graph."
            raise ZenwireEmissionError(msg)

        for dependency in definition.class_dependencies():
            self._collect_modules(dependency, consumer=identifier, visited=visited, modules=modules)

        match definition:
            case ClassDefinition():
                modules.append(self._module_of(identifier))
            case ReferenceDefinition() if not definition.is_self_reference:
                modules.append(self._module_of(identifier))
            case (
                ReferenceDefinition()
                | SelfDefinition()
                | ContextDependentDefinition()
                | AutoloadedDefinition()
            ):
                pass
            case _:
                assert_never(definition)

    def _module_of(self, identifier: str) -> str:
        module = self._graph.module_of(identifier)
        if not module:
            msg = f"Identifier '{identifier}' has no module part and cannot be imported."
            raise ZenwireEmissionError(msg)
        return module


def is_cached_definition(definition: Definition) -> bool:
    match definition:
        case ClassDefinition():
            return definition.is_cached()
        case (
            ReferenceDefinition()
            | SelfDefinition()
            | ContextDependentDefinition()
            | AutoloadedDefinition()
        ):
            return False
        case _:
            assert_never(definition)


def _unique_ordered(values: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _check_unique_names(factories: tuple[FactoryPlan, ...], proxies: list[ProxyPlan]) -> None:
    """Reject identifiers whose generated method and file names coincide.

    Names flatten dots and other non-identifier characters, so ``app.a__b.C`` and
    ``app.a.b__C`` both map to ``app__a__b__C``.
    """
    owners: dict[str, str] = {}
    names = [(factory.method_name, factory.identifier) for factory in factories]
    names.extend((proxy.method_name, proxy.definition.identifier) for proxy in proxies)
    for method_name, identifier in names:
        owner = owners.setdefault(method_name, identifier)
        if owner != identifier:
            msg = (
                f"Identifiers '{owner}' and '{identifier}' both map to the generated name "
                f"'{method_name}'. Rename one of the modules or classes."
            )
            raise ZenwireEmissionError(msg)
