"""Runtime base class of generated containers.

Generated container modules subclass ``AbstractCompiledContainer`` and only
add factory methods plus the ``_entry_points`` table. Nothing here inspects
classes: all wiring was decided when the container was compiled.
"""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import threading
from pathlib import Path
from types import ModuleType
from typing import Any, ClassVar

from zenwire._internal.identifiers import to_identifier
from zenwire.container_interface import ContainerInterface
from zenwire.exceptions import ZenwireNotFoundError


class AbstractCompiledContainer(ContainerInterface):
    """Base class of compiled containers.

    Args:
        definition_directory: Directory holding file-based definitions. Defaults
            to ``_definition_directory`` next to the generated module.

    """

    _entry_points: dict[str, str] = {}
    """Entry point identifier -> name of the method building it."""

    _definition_directory: ClassVar[str] = "definitions"

    def __init__(self, definition_directory: str | Path | None = None) -> None:
        self._entry_points = dict(type(self)._entry_points)
        self._singletons: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._definition_modules: dict[str, ModuleType] = {}
        if definition_directory is None:
            module_file = inspect.getfile(type(self))
            definition_directory = Path(module_file).parent / self._definition_directory
        self._definition_path = Path(definition_directory)

    def get(self, identifier: Any) -> Any:
        key = to_identifier(identifier)
        method_name = self._entry_points.get(key)
        if method_name is None:
            raise ZenwireNotFoundError(key)
        return getattr(self, method_name)()

    def has(self, identifier: str | type[Any]) -> bool:
        return to_identifier(identifier) in self._entry_points

    def _require(self, filename: str) -> Any:
        """Build an entry through the ``build`` function of a definition file."""
        with self._lock:
            module = self._definition_modules.get(filename)
            if module is None:
                module = self._load_definition_module(filename)
                self._definition_modules[filename] = module
        return module.build(self)

    def _include(self, module_name: str) -> None:
        """Import a module ahead of building the entries that live in it."""
        importlib.import_module(module_name)

    def _load_definition_module(self, filename: str) -> ModuleType:
        path = self._definition_path / filename
        module_name = f"{type(self).__module__}.__definitions__.{Path(filename).stem}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            msg = f"Cannot load definition file '{path}'."
            raise ImportError(msg)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    def __repr__(self) -> str:
        return f"{type(self).__name__}(entry_points={len(self._entry_points)})"
