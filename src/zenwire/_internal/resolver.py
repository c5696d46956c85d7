from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TypeVar, assert_never

from zenwire._internal.definitions import (
    ArgumentSource,
    AutoloadedDefinition,
    ClassDefinition,
    ContextDependentDefinition,
    Definition,
    DefinitionGraph,
    ReferenceDefinition,
    SelfDefinition,
)
from zenwire.config import CompilerConfig
from zenwire.container_interface import CONTAINER_INTERFACE_ID
from zenwire.entry_points import EntryPoint
from zenwire.exceptions import (
    ZenwireContextDependentLookupError,
    ZenwireIntrospectionError,
    ZenwireInvalidConfigurationError,
    ZenwireInvalidOverrideError,
    ZenwireNotFoundError,
    ZenwireStaticInjectionError,
    ZenwireUnresolvableTypeError,
)
from zenwire.hints import DefinitionHintProtocol
from zenwire.markers import EntryReference
from zenwire.metadata import MetadataProvider, is_literal_value
from zenwire.scope import Scope

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DependencyResolver:
    """Build the definition graph of a container from its entry points.

    Resolution walks from each entry point, consults definition hints, and falls
    back to constructing the class from the metadata provider's description of
    its constructor and fields. Identifiers are memoized in the graph, so diamond
    and cyclic dependencies terminate without explicit cycle detection.

    Every call of ``resolve_all``/``resolve_one`` builds and returns a fresh
    ``DefinitionGraph``; the resolver itself holds no per-pass state.
    """

    def __init__(self, config: CompilerConfig, metadata_provider: MetadataProvider) -> None:
        self._config = config
        self._metadata = metadata_provider
        self._entry_points: Mapping[str, EntryPoint] = config.entry_point_map()
        self._hints: Mapping[str, DefinitionHintProtocol] = config.definition_hints()
        self._wildcard_hints = tuple(config.wildcard_hints())

    @property
    def entry_points(self) -> Mapping[str, EntryPoint]:
        return self._entry_points

    def resolve_all(self) -> DefinitionGraph:
        """Resolve every declared entry point and its transitive dependencies."""
        graph = self._new_graph()
        for identifier, entry_point in self._entry_points.items():
            self._resolve(
                graph,
                identifier,
                consumer=None,
                entry_point=entry_point,
                runtime=False,
            )
            self._mark_autoloaded(graph, identifier, entry_point)
        for identifier in self._config.autoload.always_autoloaded_classes:
            self._record_module(graph, identifier, consumer=None)

        logger.info(
            "Resolved container graph: entry_point_count=%d definition_count=%d",
            len(self._entry_points),
            len(graph),
        )
        return graph

    def resolve_one(self, identifier: str) -> DefinitionGraph:
        """Resolve a single declared entry point for a runtime lookup.

        File-based placement is always disabled for runtime lookups.

        Args:
            identifier: Identifier of a declared entry point.

        Raises:
            ZenwireNotFoundError: If the identifier is not a declared entry point.

        """
        entry_point = self._entry_points.get(identifier)
        if entry_point is None:
            raise ZenwireNotFoundError(identifier)

        graph = self._new_graph()
        self._resolve(graph, identifier, consumer=None, entry_point=entry_point, runtime=True)
        logger.info(
            "Resolved entry point graph: entry_point=%s definition_count=%d",
            identifier,
            len(graph),
        )
        return graph

    def _new_graph(self) -> DefinitionGraph:
        container_fqcn = self._config.container_fqcn
        graph = DefinitionGraph()
        graph.add(
            CONTAINER_INTERFACE_ID,
            ReferenceDefinition(
                identifier=CONTAINER_INTERFACE_ID,
                referenced_identifier=container_fqcn,
                is_entry_point=CONTAINER_INTERFACE_ID in self._entry_points,
                is_self_reference=True,
            ),
        )
        graph.add(
            container_fqcn,
            SelfDefinition(
                identifier=container_fqcn,
                is_entry_point=container_fqcn in self._entry_points,
            ),
        )
        return graph

    def _resolve(
        self,
        graph: DefinitionGraph,
        identifier: str,
        *,
        consumer: str | None,
        entry_point: EntryPoint,
        runtime: bool,
    ) -> None:
        existing = graph.get(identifier)
        if existing is not None:
            if isinstance(existing, ClassDefinition) and existing.needs_dependency_resolution():
                self._resolve_dependencies(
                    graph,
                    existing,
                    consumer=consumer,
                    entry_point=entry_point,
                    runtime=runtime,
                )
            return

        is_file_based = False if runtime else self._is_file_based(identifier, entry_point)

        hint = self._find_hint(identifier)
        if hint is not None:
            logger.debug(
                "Resolving '%s' through hint %r (consumer=%s, file_based=%s)",
                identifier,
                hint,
                consumer,
                is_file_based,
            )
            definitions = hint.to_definitions(self._entry_points, self._hints, identifier, is_file_based)
            for definition_id, definition in definitions:
                if not graph.add(definition_id, definition):
                    continue
                if definition.is_file_based and self._config.file_based_definitions.is_excluded(
                    definition_id,
                ):
                    definition.is_file_based = False
                if isinstance(definition, ReferenceDefinition) and not definition.is_self_reference:
                    self._record_module(graph, definition_id, consumer=consumer)
                if isinstance(definition, ClassDefinition):
                    self._apply_entry_point_overrides(definition)
                self._resolve(
                    graph,
                    definition_id,
                    consumer=consumer,
                    entry_point=entry_point,
                    runtime=runtime,
                )

            if identifier not in graph:
                msg = f"Definition hint {hint!r} produced no definition for '{identifier}'."
                raise ZenwireInvalidConfigurationError(msg)
            return

        logger.debug(
            "Resolving '%s' as a class (consumer=%s, file_based=%s)",
            identifier,
            consumer,
            is_file_based,
        )
        definition = ClassDefinition(
            identifier=identifier,
            scope=Scope.SINGLETON,
            is_entry_point=identifier in self._entry_points,
            is_file_based=is_file_based,
        )
        self._apply_entry_point_overrides(definition)
        graph.add(identifier, definition)
        self._resolve_dependencies(
            graph,
            definition,
            consumer=consumer,
            entry_point=entry_point,
            runtime=runtime,
        )

    def _resolve_dependencies(
        self,
        graph: DefinitionGraph,
        definition: ClassDefinition,
        *,
        consumer: str | None,
        entry_point: EntryPoint,
        runtime: bool,
    ) -> None:
        definition.mark_resolved()
        self._record_module(graph, definition.identifier, consumer=consumer)

        if self._config.use_constructor_injection:
            self._resolve_constructor_arguments(
                graph,
                definition,
                consumer=consumer,
                entry_point=entry_point,
                runtime=runtime,
            )

        if self._config.use_field_injection:
            self._resolve_fields(
                graph,
                definition,
                consumer=consumer,
                entry_point=entry_point,
                runtime=runtime,
            )

    def _resolve_constructor_arguments(
        self,
        graph: DefinitionGraph,
        definition: ClassDefinition,
        *,
        consumer: str | None,
        entry_point: EntryPoint,
        runtime: bool,
    ) -> None:
        parameters = self._introspect(
            self._metadata.constructor_parameters,
            definition.identifier,
            consumer,
        )

        parameter_names: list[str] = []
        for parameter in parameters:
            parameter_names.append(parameter.name)

            if parameter.name in definition.parameter_overrides:
                definition.add_constructor_argument(
                    name=parameter.name,
                    kind=parameter.kind,
                    source=_override_source(definition.parameter_overrides[parameter.name]),
                )
                continue

            if parameter.is_optional:
                source = (
                    ArgumentSource.from_value(parameter.default)
                    if is_literal_value(parameter.default)
                    else ArgumentSource.omitted()
                )
                definition.add_constructor_argument(
                    name=parameter.name,
                    kind=parameter.kind,
                    source=source,
                )
                continue

            if parameter.type is None:
                raise ZenwireUnresolvableTypeError(
                    definition.identifier,
                    parameter.name,
                    _unresolvable_reason(parameter.annotation),
                )

            definition.add_constructor_argument(
                name=parameter.name,
                kind=parameter.kind,
                source=ArgumentSource.from_class(parameter.type),
            )
            self._resolve(
                graph,
                parameter.type,
                consumer=definition.identifier,
                entry_point=entry_point,
                runtime=runtime,
            )
            self._count_reference(graph, parameter.type, consumer=definition)

        invalid_overrides = [
            name for name in definition.parameter_overrides if name not in parameter_names
        ]
        if invalid_overrides:
            raise ZenwireInvalidOverrideError(
                definition.identifier,
                "constructor parameters",
                invalid_overrides,
            )

    def _resolve_fields(
        self,
        graph: DefinitionGraph,
        definition: ClassDefinition,
        *,
        consumer: str | None,
        entry_point: EntryPoint,
        runtime: bool,
    ) -> None:
        fields = self._introspect(self._metadata.fields, definition.identifier, consumer)

        field_names: list[str] = []
        for field in fields:
            field_names.append(field.name)

            if field.name in definition.field_overrides:
                definition.add_field(
                    name=field.name,
                    source=_override_source(definition.field_overrides[field.name]),
                )
                continue

            if not field.is_injectable:
                continue

            if field.is_static:
                raise ZenwireStaticInjectionError(definition.identifier, field.name)

            if field.type is None:
                raise ZenwireUnresolvableTypeError(
                    definition.identifier,
                    field.name,
                    _unresolvable_reason(field.annotation),
                )

            definition.add_field(name=field.name, source=ArgumentSource.from_class(field.type))
            self._resolve(
                graph,
                field.type,
                consumer=definition.identifier,
                entry_point=entry_point,
                runtime=runtime,
            )
            self._count_reference(graph, field.type, consumer=definition)

        invalid_overrides = [name for name in definition.field_overrides if name not in field_names]
        if invalid_overrides:
            raise ZenwireInvalidOverrideError(definition.identifier, "fields", invalid_overrides)

    def _count_reference(
        self,
        graph: DefinitionGraph,
        identifier: str,
        *,
        consumer: ClassDefinition,
    ) -> None:
        self._increase_reference_count(
            graph,
            graph[identifier],
            consumer=consumer.identifier,
            is_consumer_singleton=consumer.scope is Scope.SINGLETON,
            visited=set(),
        )

    def _increase_reference_count(
        self,
        graph: DefinitionGraph,
        definition: Definition,
        *,
        consumer: str,
        is_consumer_singleton: bool,
        visited: set[str],
    ) -> None:
        match definition:
            case ClassDefinition():
                definition.increase_reference_count(
                    consumer,
                    is_consumer_singleton=is_consumer_singleton,
                )
            case ReferenceDefinition():
                definition.increase_reference_count(
                    consumer,
                    is_consumer_singleton=is_consumer_singleton,
                )
                visited.add(definition.identifier)
                target_id = definition.referenced_identifier
                if definition.is_self_reference or target_id in visited:
                    return
                target = graph.get(target_id)
                if target is not None:
                    self._increase_reference_count(
                        graph,
                        target,
                        consumer=consumer,
                        is_consumer_singleton=is_consumer_singleton,
                        visited=visited,
                    )
            case ContextDependentDefinition():
                branch = definition.branch_for(consumer)
                if branch is None:
                    raise ZenwireContextDependentLookupError(definition.identifier, consumer)
                self._increase_reference_count(
                    graph,
                    branch,
                    consumer=consumer,
                    is_consumer_singleton=is_consumer_singleton,
                    visited=visited,
                )
            case SelfDefinition() | AutoloadedDefinition():
                pass
            case _:
                assert_never(definition)

    def _mark_autoloaded(
        self,
        graph: DefinitionGraph,
        identifier: str,
        entry_point: EntryPoint,
    ) -> None:
        autoload_config = self._config.autoload
        if not entry_point.is_autoloaded(autoload_config) or autoload_config.is_excluded(identifier):
            return

        definition = graph.get(identifier)
        if isinstance(definition, (ClassDefinition, ReferenceDefinition)):
            definition.is_autoloaded = True

    def _apply_entry_point_overrides(self, definition: ClassDefinition) -> None:
        entry_point = self._entry_points.get(definition.identifier)
        if entry_point is None:
            return
        definition.parameter_overrides = {
            **entry_point.parameter_overrides(definition.identifier),
            **definition.parameter_overrides,
        }
        definition.field_overrides = {
            **entry_point.field_overrides(definition.identifier),
            **definition.field_overrides,
        }

    def _is_file_based(self, identifier: str, entry_point: EntryPoint) -> bool:
        file_based_config = self._config.file_based_definitions
        if file_based_config.is_excluded(identifier):
            return False
        return entry_point.is_file_based(file_based_config)

    def _find_hint(self, identifier: str) -> DefinitionHintProtocol | None:
        hint = self._hints.get(identifier)
        if hint is not None:
            return hint
        for wildcard_hint in self._wildcard_hints:
            if wildcard_hint.matches(identifier):
                return wildcard_hint
        return None

    def _record_module(self, graph: DefinitionGraph, identifier: str, *, consumer: str | None) -> None:
        module = self._introspect(self._metadata.module_name, identifier, consumer)
        if not module:
            return
        if not identifier.startswith(f"{module}."):
            raise ZenwireIntrospectionError(
                identifier,
                f"module '{module}' is not a prefix of the identifier",
                consumer=consumer,
            )
        graph.set_module(identifier, module)

    def _introspect(
        self,
        method: Callable[[str], T],
        identifier: str,
        consumer: str | None,
    ) -> T:
        try:
            return method(identifier)
        except ZenwireIntrospectionError as error:
            if error.consumer is not None or consumer is None:
                raise
            raise ZenwireIntrospectionError(
                error.identifier,
                error.reason,
                consumer=consumer,
            ) from error


def _override_source(value: object) -> ArgumentSource:
    if isinstance(value, EntryReference):
        return ArgumentSource.from_reference(value.identifier)
    return ArgumentSource.from_value(value)


def _unresolvable_reason(annotation: str) -> str:
    if not annotation:
        return "type declaration is missing"
    return f"type declaration '{annotation}' is not a class"
