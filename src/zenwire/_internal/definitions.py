from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

from zenwire.metadata import ParameterKind
from zenwire.scope import Scope

Identifier: TypeAlias = str
"""A unique string naming a constructible type."""


class SourceKind(Enum):
    """Where the value of a constructor argument or field comes from."""

    CLASS = "class"
    """Built by the factory of another identifier."""

    VALUE = "value"
    """A Python literal from an override or a parameter default."""

    REFERENCE = "reference"
    """An override pointing to another entry point, retrieved through ``get``."""

    OMITTED = "omitted"
    """A default that is not a literal; the argument is left out of the call."""


@dataclass(frozen=True, slots=True)
class ArgumentSource:
    """Describe how a single injected value is produced."""

    kind: SourceKind
    value: Any = None
    """Identifier for CLASS and REFERENCE sources, the literal for VALUE sources."""

    @classmethod
    def from_class(cls, identifier: Identifier) -> ArgumentSource:
        return cls(kind=SourceKind.CLASS, value=identifier)

    @classmethod
    def from_value(cls, value: Any) -> ArgumentSource:
        return cls(kind=SourceKind.VALUE, value=value)

    @classmethod
    def from_reference(cls, identifier: Identifier) -> ArgumentSource:
        return cls(kind=SourceKind.REFERENCE, value=identifier)

    @classmethod
    def omitted(cls) -> ArgumentSource:
        return cls(kind=SourceKind.OMITTED)


@dataclass(frozen=True, slots=True)
class ConstructorArgument:
    """A constructor argument bound to its source."""

    index: int
    name: str
    kind: ParameterKind
    source: ArgumentSource


@dataclass(frozen=True, slots=True)
class InjectedField:
    """A field assigned after construction."""

    name: str
    source: ArgumentSource


@dataclass(slots=True)
class ReferenceCount:
    """Number of references from one consumer, split by the consumer's scope."""

    singleton: int = 0
    prototype: int = 0


@dataclass(kw_only=True, slots=True, eq=False)
class _CountedDefinition:
    identifier: Identifier
    scope: Scope = Scope.SINGLETON
    is_entry_point: bool = False
    is_file_based: bool = False
    is_autoloaded: bool = False
    references: dict[Identifier, ReferenceCount] = field(default_factory=dict)

    def increase_reference_count(self, consumer: Identifier, *, is_consumer_singleton: bool) -> None:
        """Record one reference from a consumer.

        Args:
            consumer: Identifier of the class whose constructor or field needs this definition.
            is_consumer_singleton: Whether the consumer itself is singleton-scoped.

        """
        count = self.references.setdefault(consumer, ReferenceCount())
        if is_consumer_singleton:
            count.singleton += 1
        else:
            count.prototype += 1

    def singleton_reference_count(self) -> int:
        return sum(count.singleton for count in self.references.values())

    def reference_count(self, consumer: Identifier) -> int:
        count = self.references.get(consumer)
        if count is None:
            return 0
        return count.singleton + count.prototype

    def is_cached(self) -> bool:
        """Return whether the emitted factory constructs once and caches the entry.

        Singletons are cached when they are public entry points, when at least one
        singleton consumer references them, or when nothing references them. A
        singleton referenced only by prototype consumers is built fresh.
        """
        if self.scope is not Scope.SINGLETON:
            return False
        if self.is_entry_point or not self.references:
            return True
        return self.singleton_reference_count() > 0


@dataclass(kw_only=True, slots=True, eq=False)
class ClassDefinition(_CountedDefinition):
    """Build a concrete class through constructor arguments and injected fields."""

    parameter_overrides: dict[str, Any] = field(default_factory=dict)
    """Configured constructor parameter overrides (name -> literal or ``EntryReference``)."""
    field_overrides: dict[str, Any] = field(default_factory=dict)
    """Configured field overrides (name -> literal or ``EntryReference``)."""
    constructor_arguments: list[ConstructorArgument] = field(default_factory=list)
    fields: list[InjectedField] = field(default_factory=list)
    is_resolved: bool = False

    def needs_dependency_resolution(self) -> bool:
        return not self.is_resolved

    def mark_resolved(self) -> None:
        if self.is_resolved:
            msg = f"Dependencies of '{self.identifier}' were already resolved."
            raise RuntimeError(msg)
        self.is_resolved = True

    def add_constructor_argument(
        self,
        *,
        name: str,
        kind: ParameterKind,
        source: ArgumentSource,
    ) -> None:
        self.constructor_arguments.append(
            ConstructorArgument(
                index=len(self.constructor_arguments),
                name=name,
                kind=kind,
                source=source,
            ),
        )

    def add_field(self, *, name: str, source: ArgumentSource) -> None:
        self.fields.append(InjectedField(name=name, source=source))

    def class_dependencies(self) -> tuple[Identifier, ...]:
        sources = [argument.source for argument in self.constructor_arguments]
        sources.extend(injected.source for injected in self.fields)
        dependencies = [source.value for source in sources if source.kind is SourceKind.CLASS]
        return tuple(dict.fromkeys(dependencies))


@dataclass(kw_only=True, slots=True, eq=False)
class ReferenceDefinition(_CountedDefinition):
    """Satisfy an identifier by the definition of another identifier."""

    referenced_identifier: Identifier
    is_self_reference: bool = False
    """True for the binding of the container interface to the compiled container itself."""

    def needs_dependency_resolution(self) -> bool:
        return False

    def class_dependencies(self) -> tuple[Identifier, ...]:
        if self.is_self_reference:
            return ()
        return (self.referenced_identifier,)


@dataclass(kw_only=True, slots=True, eq=False)
class SelfDefinition:
    """The compiled container's own class; retrieving it returns the container."""

    identifier: Identifier
    is_entry_point: bool = False
    is_file_based: bool = False
    is_autoloaded: bool = False

    @property
    def scope(self) -> Scope:
        return Scope.SINGLETON

    def needs_dependency_resolution(self) -> bool:
        return False

    def class_dependencies(self) -> tuple[Identifier, ...]:
        return ()


@dataclass(kw_only=True, slots=True, eq=False)
class ContextDependentDefinition:
    """Choose a definition based on the consumer that requests the identifier."""

    identifier: Identifier
    default: Definition | None = None
    branches: dict[Identifier, Definition] = field(default_factory=dict)
    is_entry_point: bool = False
    is_file_based: bool = False
    is_autoloaded: bool = False

    @property
    def scope(self) -> Scope:
        if self.default is None:
            return Scope.PROTOTYPE
        return self.default.scope

    def needs_dependency_resolution(self) -> bool:
        return False

    def class_dependencies(self) -> tuple[Identifier, ...]:
        return ()

    def branch_for(self, consumer: Identifier | None) -> Definition | None:
        """Return the definition used for a consumer, falling back to the default."""
        if consumer is not None and consumer in self.branches:
            return self.branches[consumer]
        return self.default


@dataclass(kw_only=True, slots=True, eq=False)
class AutoloadedDefinition:
    """Activate the modules of an entry point and its dependencies before building it."""

    identifier: Identifier
    is_file_based: bool = False
    is_entry_point: bool = True
    is_autoloaded: bool = True

    @property
    def scope(self) -> Scope:
        return Scope.PROTOTYPE

    def needs_dependency_resolution(self) -> bool:
        return False

    def class_dependencies(self) -> tuple[Identifier, ...]:
        return ()


Definition: TypeAlias = (
    ClassDefinition
    | ReferenceDefinition
    | SelfDefinition
    | ContextDependentDefinition
    | AutoloadedDefinition
)
"""Tagged union of every definition variant."""


class DefinitionGraph:
    """Ordered, write-once mapping of identifier to definition.

    A graph is created per resolver pass and handed to the compiler. Insertion
    order is the order in which the resolver discovered identifiers, which keeps
    emitted code deterministic.

    The graph also records the module each class identifier is imported from.
    Identifiers without a recorded module are split at their last dot.
    """

    def __init__(self) -> None:
        self._definitions: dict[Identifier, Definition] = {}
        self._modules: dict[Identifier, str] = {}

    def add(self, identifier: Identifier, definition: Definition) -> bool:
        """Insert a definition unless the identifier is already present.

        Args:
            identifier: Identifier the definition is registered under.
            definition: Definition to insert.

        Returns:
            ``True`` when the definition was inserted.

        """
        if identifier in self._definitions:
            return False
        self._definitions[identifier] = definition
        return True

    def get(self, identifier: Identifier) -> Definition | None:
        return self._definitions.get(identifier)

    def set_module(self, identifier: Identifier, module: str) -> None:
        if not identifier.startswith(f"{module}."):
            msg = f"Module '{module}' is not a prefix of identifier '{identifier}'."
            raise ValueError(msg)
        self._modules[identifier] = module

    def module_of(self, identifier: Identifier) -> str:
        module = self._modules.get(identifier)
        if module is None:
            return identifier.rpartition(".")[0]
        return module

    def items(self) -> Iterator[tuple[Identifier, Definition]]:
        yield from self._definitions.items()

    def __getitem__(self, identifier: Identifier) -> Definition:
        return self._definitions[identifier]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._definitions

    def __iter__(self) -> Iterator[Identifier]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"DefinitionGraph({list(self._definitions)!r})"
