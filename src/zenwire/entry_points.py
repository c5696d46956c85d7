from __future__ import annotations

import importlib
import inspect
import pkgutil
from abc import ABC, abstractmethod
from collections.abc import Mapping
from types import ModuleType
from typing import TYPE_CHECKING, Any

from zenwire._internal.identifiers import normalize_overrides, to_identifier
from zenwire.exceptions import ZenwireInvalidConfigurationError

if TYPE_CHECKING:
    from zenwire.config import AutoloadConfig, FileBasedDefinitionConfig


class EntryPoint(ABC):
    """Declare identifiers exposed as public retrieval methods of the compiled container.

    ``autoloaded`` and ``file_based`` default to ``None``, which defers to the
    global switches of ``AutoloadConfig`` and ``FileBasedDefinitionConfig``.
    """

    def __init__(self, *, autoloaded: bool | None = None, file_based: bool | None = None) -> None:
        self._autoloaded = autoloaded
        self._file_based = file_based

    @abstractmethod
    def class_names(self) -> tuple[str, ...]:
        """Return the identifiers covered by this entry point, in declaration order."""

    def is_autoloaded(self, autoload_config: AutoloadConfig) -> bool:
        if self._autoloaded is not None:
            return self._autoloaded
        return autoload_config.global_autoload_enabled

    def is_file_based(self, file_based_config: FileBasedDefinitionConfig) -> bool:
        if self._file_based is not None:
            return self._file_based
        return file_based_config.global_file_based_definitions_enabled

    def parameter_overrides(self, identifier: str) -> Mapping[str, Any]:
        """Return constructor parameter overrides configured for an identifier."""
        return {}

    def field_overrides(self, identifier: str) -> Mapping[str, Any]:
        """Return field overrides configured for an identifier."""
        return {}


class ClassEntryPoint(EntryPoint):
    """Expose a single class, optionally overriding constructor parameters and fields.

    Examples:
        .. code-block:: python

            ClassEntryPoint(NatureUtil, parameters={"humans_enabled": True})

    """

    def __init__(
        self,
        class_name: str | type[Any],
        *,
        parameters: Mapping[str, Any] | None = None,
        fields: Mapping[str, Any] | None = None,
        autoloaded: bool | None = None,
        file_based: bool | None = None,
    ) -> None:
        super().__init__(autoloaded=autoloaded, file_based=file_based)
        self.class_name = to_identifier(class_name)
        self._parameters = normalize_overrides(self.class_name, "parameter", parameters)
        self._fields = normalize_overrides(self.class_name, "field", fields)

    def class_names(self) -> tuple[str, ...]:
        return (self.class_name,)

    def parameter_overrides(self, identifier: str) -> Mapping[str, Any]:
        if identifier != self.class_name:
            return {}
        return self._parameters

    def field_overrides(self, identifier: str) -> Mapping[str, Any]:
        if identifier != self.class_name:
            return {}
        return self._fields

    def __repr__(self) -> str:
        return f"ClassEntryPoint({self.class_name!r})"


class ModuleEntryPoint(EntryPoint):
    """Expose every concrete class defined in a module, or in a package tree.

    Classes are listed in module definition order; with ``recursive=True`` the
    submodules of a package follow in sorted module-name order. Abstract classes
    and classes imported from other modules are skipped.
    """

    def __init__(
        self,
        module_name: str,
        *,
        recursive: bool = False,
        autoloaded: bool | None = None,
        file_based: bool | None = None,
    ) -> None:
        super().__init__(autoloaded=autoloaded, file_based=file_based)
        self.module_name = module_name
        self.recursive = recursive
        self._class_names: tuple[str, ...] | None = None

    def class_names(self) -> tuple[str, ...]:
        if self._class_names is None:
            modules = [self._import(self.module_name)]
            if self.recursive:
                modules.extend(self._import(name) for name in self._submodule_names(modules[0]))
            self._class_names = tuple(
                class_name for module in modules for class_name in self._module_classes(module)
            )
        return self._class_names

    def _submodule_names(self, package: ModuleType) -> list[str]:
        search_path = getattr(package, "__path__", None)
        if search_path is None:
            return []
        return sorted(
            info.name for info in pkgutil.walk_packages(search_path, prefix=f"{package.__name__}.")
        )

    def _module_classes(self, module: ModuleType) -> list[str]:
        return [
            to_identifier(value)
            for value in vars(module).values()
            if inspect.isclass(value)
            and value.__module__ == module.__name__
            and not inspect.isabstract(value)
        ]

    def _import(self, module_name: str) -> ModuleType:
        try:
            return importlib.import_module(module_name)
        except ImportError as error:
            msg = f"Cannot import entry point module '{module_name}': {error}"
            raise ZenwireInvalidConfigurationError(msg) from error

    def __repr__(self) -> str:
        return f"ModuleEntryPoint({self.module_name!r}, recursive={self.recursive})"
