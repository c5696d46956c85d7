"""Definition hints: configuration that replaces default class-based resolution.

A hint is asked for the definitions of one identifier and returns an ordered
list of ``(identifier, Definition)`` pairs. The resolver inserts the pairs that
are not in the graph yet and resolves them recursively.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Protocol

from zenwire._internal.definitions import (
    ClassDefinition,
    ContextDependentDefinition,
    Definition,
    ReferenceDefinition,
)
from zenwire._internal.identifiers import normalize_overrides, to_identifier
from zenwire.exceptions import ZenwireInvalidConfigurationError
from zenwire.scope import Scope

if TYPE_CHECKING:
    from typing_extensions import Self

    from zenwire.entry_points import EntryPoint

_WILDCARD = "*"
_WILDCARD_CAPTURE = r"([^.]*)"


class DefinitionHintProtocol(Protocol):
    """Protocol implemented by every definition hint."""

    def to_definitions(
        self,
        entry_points: Mapping[str, EntryPoint],
        hints: Mapping[str, DefinitionHintProtocol],
        identifier: str,
        is_file_based: bool,  # noqa: FBT001
    ) -> list[tuple[str, Definition]]:
        """Return the definitions that satisfy an identifier.

        Args:
            entry_points: Declared entry points keyed by identifier.
            hints: Every exact-identifier hint, for hints that delegate to siblings.
            identifier: Identifier being resolved.
            is_file_based: Whether definitions should be placed in separate files.

        """


class DefinitionHint:
    """Bind an identifier to a concrete class with an explicit scope.

    Binding an interface produces a ``ReferenceDefinition`` for the interface and
    a ``ClassDefinition`` for the class. Binding a class to itself only changes
    its scope or overrides. When the target class has a hint of its own, the
    definitions of that sibling hint are used for it.

    Examples:
        .. code-block:: python

            hints = {
                AnimalServiceInterface: AnimalService,
                PlantServiceInterface: DefinitionHint.prototype(PlantService),
                Mailer: DefinitionHint.singleton(Mailer).set_parameter("retries", 3),
            }

    """

    def __init__(self, class_name: str | type[Any], scope: Scope = Scope.SINGLETON) -> None:
        self.class_name = to_identifier(class_name)
        self.scope = scope
        self.parameters: dict[str, Any] = {}
        self.fields: dict[str, Any] = {}

    @classmethod
    def singleton(cls, class_name: str | type[Any]) -> DefinitionHint:
        return cls(class_name, Scope.SINGLETON)

    @classmethod
    def prototype(cls, class_name: str | type[Any]) -> DefinitionHint:
        return cls(class_name, Scope.PROTOTYPE)

    def set_parameter(self, name: str, value: Any) -> Self:
        """Override a constructor parameter of the target class.

        Args:
            name: Constructor parameter name.
            value: A Python literal or an ``EntryReference``.

        """
        self.parameters.update(normalize_overrides(self.class_name, "parameter", {name: value}))
        return self

    def set_field(self, name: str, value: Any) -> Self:
        """Override a field of the target class.

        Args:
            name: Field name.
            value: A Python literal or an ``EntryReference``.

        """
        self.fields.update(normalize_overrides(self.class_name, "field", {name: value}))
        return self

    def to_definitions(
        self,
        entry_points: Mapping[str, EntryPoint],
        hints: Mapping[str, DefinitionHintProtocol],
        identifier: str,
        is_file_based: bool,  # noqa: FBT001
    ) -> list[tuple[str, Definition]]:
        return self._to_definitions(
            entry_points=entry_points,
            hints=hints,
            identifier=identifier,
            is_file_based=is_file_based,
            visited=frozenset(),
        )

    def _to_definitions(
        self,
        *,
        entry_points: Mapping[str, EntryPoint],
        hints: Mapping[str, DefinitionHintProtocol],
        identifier: str,
        is_file_based: bool,
        visited: frozenset[str],
    ) -> list[tuple[str, Definition]]:
        if identifier == self.class_name:
            return [(self.class_name, self._class_definition(entry_points, is_file_based))]

        if self.class_name in visited:
            msg = f"Definition hints form a cycle through '{self.class_name}'."
            raise ZenwireInvalidConfigurationError(msg)

        definitions: list[tuple[str, Definition]] = [
            (
                identifier,
                ReferenceDefinition(
                    identifier=identifier,
                    referenced_identifier=self.class_name,
                    scope=self.scope,
                    is_entry_point=identifier in entry_points,
                    is_file_based=is_file_based,
                ),
            ),
        ]

        sibling = hints.get(self.class_name)
        if isinstance(sibling, DefinitionHint):
            definitions.extend(
                sibling._to_definitions(  # noqa: SLF001
                    entry_points=entry_points,
                    hints=hints,
                    identifier=self.class_name,
                    is_file_based=is_file_based,
                    visited=visited | {identifier},
                ),
            )
        elif sibling is not None:
            definitions.extend(
                sibling.to_definitions(entry_points, hints, self.class_name, is_file_based),
            )
        else:
            definitions.append(
                (self.class_name, self._class_definition(entry_points, is_file_based)),
            )
        return definitions

    def _class_definition(
        self,
        entry_points: Mapping[str, EntryPoint],
        is_file_based: bool,  # noqa: FBT001
    ) -> ClassDefinition:
        return ClassDefinition(
            identifier=self.class_name,
            scope=self.scope,
            is_entry_point=self.class_name in entry_points,
            is_file_based=is_file_based,
            parameter_overrides=dict(self.parameters),
            field_overrides=dict(self.fields),
        )

    def __repr__(self) -> str:
        return f"DefinitionHint({self.class_name!r}, scope={self.scope.value})"


class WildcardHint:
    """Bind every identifier matching a pattern to a class derived from it.

    Each ``*`` in ``identifier_pattern`` captures a run of characters that does
    not cross a module separator, and the captures replace the ``*`` placeholders
    of ``class_pattern`` in order.

    Examples:
        .. code-block:: python

            WildcardHint.singleton(
                "app.domain.*RepositoryInterface",
                "app.infrastructure.Mysql*Repository",
            )

    """

    def __init__(
        self,
        identifier_pattern: str,
        class_pattern: str,
        scope: Scope = Scope.SINGLETON,
    ) -> None:
        placeholder_count = identifier_pattern.count(_WILDCARD)
        if placeholder_count == 0 or placeholder_count != class_pattern.count(_WILDCARD):
            msg = (
                f"Wildcard hint patterns '{identifier_pattern}' and '{class_pattern}' must "
                "contain the same, non-zero number of '*' placeholders."
            )
            raise ZenwireInvalidConfigurationError(msg)

        self.identifier_pattern = identifier_pattern
        self.class_pattern = class_pattern
        self.scope = scope
        self._regex = re.compile(
            _WILDCARD_CAPTURE.join(re.escape(part) for part in identifier_pattern.split(_WILDCARD)),
        )

    @classmethod
    def singleton(cls, identifier_pattern: str, class_pattern: str) -> WildcardHint:
        return cls(identifier_pattern, class_pattern, Scope.SINGLETON)

    @classmethod
    def prototype(cls, identifier_pattern: str, class_pattern: str) -> WildcardHint:
        return cls(identifier_pattern, class_pattern, Scope.PROTOTYPE)

    def matches(self, identifier: str) -> bool:
        return self._regex.fullmatch(identifier) is not None

    def class_name_for(self, identifier: str) -> str:
        """Substitute the captures of a matching identifier into the class pattern.

        Args:
            identifier: Identifier matching ``identifier_pattern``.

        """
        match = self._regex.fullmatch(identifier)
        if match is None:
            msg = f"Identifier '{identifier}' does not match '{self.identifier_pattern}'."
            raise ZenwireInvalidConfigurationError(msg)

        parts = self.class_pattern.split(_WILDCARD)
        pieces = [parts[0]]
        for capture, part in zip(match.groups(), parts[1:], strict=True):
            pieces.extend((capture, part))
        return "".join(pieces)

    def to_definitions(
        self,
        entry_points: Mapping[str, EntryPoint],
        hints: Mapping[str, DefinitionHintProtocol],
        identifier: str,
        is_file_based: bool,  # noqa: FBT001
    ) -> list[tuple[str, Definition]]:
        hint = DefinitionHint(self.class_name_for(identifier), self.scope)
        return hint.to_definitions(entry_points, hints, identifier, is_file_based)

    def __repr__(self) -> str:
        return f"WildcardHint({self.identifier_pattern!r} -> {self.class_pattern!r})"


class ContextDependentDefinitionHint:
    """Bind an identifier to different classes depending on the consumer.

    Examples:
        .. code-block:: python

            LoggerInterface: (
                ContextDependentDefinitionHint()
                .set_class_context(FileLogger, [UserController, OrderController])
                .set_class_context(DefinitionHint.prototype(AuditLogger), [AuditService])
                .set_default_class(NullLogger)
            )

    """

    def __init__(
        self,
        default: DefinitionHint | str | type[Any] | None = None,
        contexts: Mapping[str | type[Any], DefinitionHint | str | type[Any]] | None = None,
    ) -> None:
        self.default = _as_definition_hint(default) if default is not None else None
        self.contexts: dict[str, DefinitionHint] = {}
        for consumer, hint in (contexts or {}).items():
            self.contexts[to_identifier(consumer)] = _as_definition_hint(hint)

    def set_class_context(
        self,
        hint: DefinitionHint | str | type[Any],
        consumers: Iterable[str | type[Any]],
    ) -> Self:
        """Bind the identifier to a class for the given consumers.

        Args:
            hint: Target class or a ``DefinitionHint`` for it.
            consumers: Classes receiving the target when they request the identifier.

        """
        definition_hint = _as_definition_hint(hint)
        for consumer in consumers:
            self.contexts[to_identifier(consumer)] = definition_hint
        return self

    def set_default_class(self, hint: DefinitionHint | str | type[Any]) -> Self:
        """Bind the identifier for consumers without a context binding and for direct lookups."""
        self.default = _as_definition_hint(hint)
        return self

    def to_definitions(
        self,
        entry_points: Mapping[str, EntryPoint],
        hints: Mapping[str, DefinitionHintProtocol],
        identifier: str,
        is_file_based: bool,  # noqa: FBT001
    ) -> list[tuple[str, Definition]]:
        related: list[tuple[str, Definition]] = []

        default = None
        if self.default is not None:
            default = self._branch(self.default, entry_points, hints, identifier, is_file_based, related)

        branches = {
            consumer: self._branch(hint, entry_points, hints, identifier, is_file_based, related)
            for consumer, hint in self.contexts.items()
        }

        definition = ContextDependentDefinition(
            identifier=identifier,
            default=default,
            branches=branches,
            is_entry_point=identifier in entry_points,
        )
        return [(identifier, definition), *related]

    def _branch(
        self,
        hint: DefinitionHint,
        entry_points: Mapping[str, EntryPoint],
        hints: Mapping[str, DefinitionHintProtocol],
        identifier: str,
        is_file_based: bool,  # noqa: FBT001
        related: list[tuple[str, Definition]],
    ) -> Definition:
        if hint.class_name == identifier:
            msg = f"Context-dependent definition '{identifier}' cannot be bound to itself."
            raise ZenwireInvalidConfigurationError(msg)

        branch: Definition | None = None
        for definition_id, definition in hint.to_definitions(
            entry_points,
            hints,
            identifier,
            is_file_based,
        ):
            if definition_id == identifier:
                branch = definition
            else:
                related.append((definition_id, definition))

        if branch is None:
            msg = f"Definition hint {hint!r} produced no definition for '{identifier}'."
            raise ZenwireInvalidConfigurationError(msg)
        return branch

    def __repr__(self) -> str:
        return f"ContextDependentDefinitionHint(contexts={sorted(self.contexts)!r})"


def _as_definition_hint(value: DefinitionHint | str | type[Any]) -> DefinitionHint:
    if isinstance(value, DefinitionHint):
        return value
    return DefinitionHint.singleton(value)


def as_hint(value: DefinitionHintProtocol | str | type[Any]) -> DefinitionHintProtocol:
    """Normalize a hint table value: bare classes and identifiers become singleton hints."""
    if isinstance(value, (str, type)):
        return DefinitionHint.singleton(value)
    return value


__all__ = [
    "ContextDependentDefinitionHint",
    "DefinitionHint",
    "DefinitionHintProtocol",
    "WildcardHint",
    "as_hint",
]
