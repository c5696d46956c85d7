from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from zenwire._internal.identifiers import split_identifier, to_identifier
from zenwire.entry_points import ClassEntryPoint, EntryPoint
from zenwire.exceptions import ZenwireInvalidConfigurationError
from zenwire.hints import DefinitionHintProtocol, WildcardHint, as_hint

DEFAULT_CONTAINER_FQCN = "compiled_container.Container"
DEFAULT_DEFINITION_DIRECTORY = "definitions"


@dataclass(frozen=True, slots=True, kw_only=True)
class AutoloadConfig:
    """Control which entry points activate their modules before construction.

    ``always_autoloaded_classes`` are activated by the compiled container's
    constructor. ``excluded_classes`` are never autoloaded, even when the global
    switch is on.
    """

    global_autoload_enabled: bool = False
    always_autoloaded_classes: tuple[str, ...] = ()
    excluded_classes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "always_autoloaded_classes",
            tuple(to_identifier(value) for value in self.always_autoloaded_classes),
        )
        object.__setattr__(
            self,
            "excluded_classes",
            tuple(to_identifier(value) for value in self.excluded_classes),
        )

    def is_excluded(self, identifier: str) -> bool:
        return identifier in self.excluded_classes or identifier in self.always_autoloaded_classes


@dataclass(frozen=True, slots=True, kw_only=True)
class FileBasedDefinitionConfig:
    """Control which definitions are written to separate definition files."""

    global_file_based_definitions_enabled: bool = False
    relative_definition_directory: str = DEFAULT_DEFINITION_DIRECTORY
    excluded_definitions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        directory = self.relative_definition_directory.strip("/")
        if not directory or directory.startswith(".."):
            msg = (
                "relative_definition_directory must be a non-empty path below the container "
                f"module, got {self.relative_definition_directory!r}."
            )
            raise ZenwireInvalidConfigurationError(msg)
        object.__setattr__(self, "relative_definition_directory", directory)
        object.__setattr__(
            self,
            "excluded_definitions",
            tuple(to_identifier(value) for value in self.excluded_definitions),
        )

    def is_excluded(self, identifier: str) -> bool:
        return identifier in self.excluded_definitions


@dataclass(kw_only=True)
class ContainerConfig:
    """Entry points and hints contributed by one part of an application.

    Subclasses may override the ``create_*`` methods instead of passing values.

    Examples:
        .. code-block:: python

            ContainerConfig(
                entry_points=[ModuleEntryPoint("app.controllers"), ClassEntryPoint(NatureUtil)],
                definition_hints={AnimalServiceInterface: AnimalService},
                wildcard_hints=[
                    WildcardHint.singleton(
                        "app.domain.*RepositoryInterface",
                        "app.infrastructure.Mysql*Repository",
                    ),
                ],
            )

    """

    entry_points: Sequence[EntryPoint | str | type[Any]] = ()
    definition_hints: Mapping[str | type[Any], DefinitionHintProtocol | str | type[Any]] = field(
        default_factory=dict,
    )
    wildcard_hints: Sequence[WildcardHint] = ()

    def create_entry_points(self) -> list[EntryPoint]:
        return [
            value if isinstance(value, EntryPoint) else ClassEntryPoint(value)
            for value in self.entry_points
        ]

    def create_definition_hints(self) -> dict[str, DefinitionHintProtocol]:
        return {
            to_identifier(identifier): as_hint(hint)
            for identifier, hint in self.definition_hints.items()
        }

    def create_wildcard_hints(self) -> list[WildcardHint]:
        return list(self.wildcard_hints)


@dataclass(kw_only=True)
class CompilerConfig:
    """Everything the resolver and the compiler need to generate one container.

    ``container_fqcn`` is the dotted path of the generated class; the part
    before the last dot is the module the main artifact is meant to be saved as.
    """

    container_fqcn: str = DEFAULT_CONTAINER_FQCN
    container_configs: Sequence[ContainerConfig] = ()
    use_constructor_injection: bool = True
    use_field_injection: bool = True
    autoload: AutoloadConfig = field(default_factory=AutoloadConfig)
    file_based_definitions: FileBasedDefinitionConfig = field(
        default_factory=FileBasedDefinitionConfig,
    )

    def __post_init__(self) -> None:
        module, class_name = split_identifier(self.container_fqcn)
        module_parts = module.split(".") if module else []
        if not class_name.isidentifier() or not all(part.isidentifier() for part in module_parts):
            msg = f"container_fqcn must be a dotted Python path, got {self.container_fqcn!r}."
            raise ZenwireInvalidConfigurationError(msg)

    @property
    def container_module(self) -> str:
        return split_identifier(self.container_fqcn)[0]

    @property
    def container_class_name(self) -> str:
        return split_identifier(self.container_fqcn)[1]

    def entry_point_map(self) -> dict[str, EntryPoint]:
        """Return declared entry points keyed by identifier, in declaration order.

        A later declaration of the same identifier replaces the entry point but
        keeps the original position.
        """
        entry_points: dict[str, EntryPoint] = {}
        for container_config in self.container_configs:
            for entry_point in container_config.create_entry_points():
                for identifier in entry_point.class_names():
                    entry_points[identifier] = entry_point
        return entry_points

    def definition_hints(self) -> dict[str, DefinitionHintProtocol]:
        hints: dict[str, DefinitionHintProtocol] = {}
        for container_config in self.container_configs:
            hints.update(container_config.create_definition_hints())
        return hints

    def wildcard_hints(self) -> list[WildcardHint]:
        return [
            hint
            for container_config in self.container_configs
            for hint in container_config.create_wildcard_hints()
        ]
