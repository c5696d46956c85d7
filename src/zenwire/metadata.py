"""Class metadata consumed by the dependency resolver.

The resolver never inspects classes itself. It asks a ``MetadataProvider`` for
the ordered constructor parameters and the annotated fields of an identifier.
Two providers ship with zenwire:

- ``ReflectionMetadataProvider`` imports the identifier and reads Python
  signatures and type hints;
- ``StaticMetadataProvider`` serves hand-authored ``ClassMetadata`` records,
  which is handy for tests and for classes that are not importable at
  compile time.
"""

from __future__ import annotations

import dataclasses
import importlib
import inspect
import math
import types
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, Protocol, get_type_hints

from zenwire.exceptions import ZenwireIntrospectionError
from zenwire.markers import (
    is_class_var_annotation,
    is_inject_annotation,
    strip_annotated,
    strip_class_var,
)

MISSING: Final[Any] = inspect.Parameter.empty
"""Sentinel for a parameter without a default value."""


class ParameterKind(Enum):
    """Describe how a constructor parameter must be passed."""

    POSITIONAL_ONLY = "positional_only"
    POSITIONAL_OR_KEYWORD = "positional_or_keyword"
    KEYWORD_ONLY = "keyword_only"


@dataclass(frozen=True, slots=True)
class ParameterMetadata:
    """Describe one constructor parameter of a class."""

    name: str
    type: str | None
    """Identifier of the parameter's concrete class, ``None`` when it cannot be determined."""
    is_optional: bool = False
    default: Any = MISSING
    kind: ParameterKind = ParameterKind.POSITIONAL_OR_KEYWORD
    annotation: str = ""
    """Human readable annotation, used in error messages."""


@dataclass(frozen=True, slots=True)
class FieldMetadata:
    """Describe one annotated field of a class."""

    name: str
    type: str | None
    is_static: bool = False
    is_injectable: bool = False
    annotation: str = ""


@dataclass(frozen=True, slots=True)
class ClassMetadata:
    """Constructor parameters and fields of a single class."""

    parameters: tuple[ParameterMetadata, ...] = ()
    fields: tuple[FieldMetadata, ...] = ()
    module: str | None = None
    """Module that defines the class, when it differs from the identifier without its last part."""


class MetadataProvider(Protocol):
    """Protocol for class metadata sources used by the resolver."""

    def constructor_parameters(self, identifier: str) -> Sequence[ParameterMetadata]:
        """Return the ordered constructor parameters of a class.

        Args:
            identifier: Identifier of the class to inspect.

        Raises:
            ZenwireIntrospectionError: If the class cannot be loaded or inspected.

        """

    def fields(self, identifier: str) -> Sequence[FieldMetadata]:
        """Return the annotated fields of a class.

        Args:
            identifier: Identifier of the class to inspect.

        Raises:
            ZenwireIntrospectionError: If the class cannot be loaded or inspected.

        """

    def module_name(self, identifier: str) -> str:
        """Return the module to import before the class is reachable by its identifier.

        The identifier minus the module prefix is the attribute path of the class
        inside that module, which is more than one part for nested classes.

        Args:
            identifier: Identifier of the class.

        Raises:
            ZenwireIntrospectionError: If the class cannot be loaded.

        """


@dataclass(slots=True)
class StaticMetadataProvider:
    """Serve metadata from a hand-authored mapping of identifier to ``ClassMetadata``."""

    classes: Mapping[str, ClassMetadata] = field(default_factory=dict)

    def constructor_parameters(self, identifier: str) -> Sequence[ParameterMetadata]:
        return self._get(identifier).parameters

    def fields(self, identifier: str) -> Sequence[FieldMetadata]:
        return self._get(identifier).fields

    def module_name(self, identifier: str) -> str:
        metadata = self.classes.get(identifier)
        if metadata is not None and metadata.module is not None:
            return metadata.module
        return identifier.rpartition(".")[0]

    def _get(self, identifier: str) -> ClassMetadata:
        metadata = self.classes.get(identifier)
        if metadata is None:
            raise ZenwireIntrospectionError(identifier, "class is not known to the metadata provider")
        return metadata


class ReflectionMetadataProvider:
    """Extract constructor and field metadata from importable Python classes.

    Identifiers are dotted paths (``"app.services.UserService"``). The longest
    importable module prefix is imported and the remaining parts are looked up
    as attributes, so nested classes work as well.
    """

    def __init__(self) -> None:
        self._classes_cache: dict[str, type[Any]] = {}
        self._modules_cache: dict[str, str] = {}
        self._parameters_cache: dict[str, tuple[ParameterMetadata, ...]] = {}
        self._fields_cache: dict[str, tuple[FieldMetadata, ...]] = {}

    def constructor_parameters(self, identifier: str) -> Sequence[ParameterMetadata]:
        cached = self._parameters_cache.get(identifier)
        if cached is not None:
            return cached

        cls = self.load_class(identifier)
        if cls.__init__ is object.__init__:
            self._parameters_cache[identifier] = ()
            return ()

        try:
            signature = inspect.signature(cls)
        except (TypeError, ValueError) as error:
            raise ZenwireIntrospectionError(identifier, f"no constructor signature ({error})") from error
        type_hints = self._constructor_type_hints(identifier, cls)

        parameters: list[ParameterMetadata] = []
        for parameter in signature.parameters.values():
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            annotation = type_hints.get(parameter.name, parameter.annotation)
            parameters.append(
                ParameterMetadata(
                    name=parameter.name,
                    type=class_identifier(annotation),
                    is_optional=parameter.default is not inspect.Parameter.empty,
                    default=parameter.default,
                    kind=_PARAMETER_KINDS[parameter.kind],
                    annotation=_describe_annotation(annotation),
                ),
            )

        result = tuple(parameters)
        self._parameters_cache[identifier] = result
        return result

    def fields(self, identifier: str) -> Sequence[FieldMetadata]:
        cached = self._fields_cache.get(identifier)
        if cached is not None:
            return cached

        cls = self.load_class(identifier)
        try:
            type_hints = get_type_hints(cls, include_extras=True)
        except (NameError, TypeError) as error:
            raise ZenwireIntrospectionError(identifier, f"cannot evaluate annotations ({error})") from error

        result = tuple(
            FieldMetadata(
                name=name,
                type=class_identifier(strip_class_var(annotation)),
                is_static=is_class_var_annotation(annotation),
                is_injectable=is_inject_annotation(annotation),
                annotation=_describe_annotation(annotation),
            )
            for name, annotation in type_hints.items()
        )
        self._fields_cache[identifier] = result
        return result

    def module_name(self, identifier: str) -> str:
        module_name = self._modules_cache.get(identifier)
        if module_name is None:
            self.load_class(identifier)
            module_name = self._modules_cache[identifier]
        return module_name

    def load_class(self, identifier: str) -> type[Any]:
        """Import and return the class named by an identifier.

        Args:
            identifier: Dotted path of the class.

        Raises:
            ZenwireIntrospectionError: If no module prefix is importable, an attribute
                is missing, or the object is not a class.

        """
        cached = self._classes_cache.get(identifier)
        if cached is not None:
            return cached

        parts = identifier.split(".")
        obj: Any = None
        for split in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split])
            try:
                obj = importlib.import_module(module_name)
            except ModuleNotFoundError as error:
                if error.name is not None and (
                    module_name == error.name or module_name.startswith(f"{error.name}.")
                ):
                    continue
                raise ZenwireIntrospectionError(identifier, f"import failed ({error})") from error
            except Exception as error:
                raise ZenwireIntrospectionError(identifier, f"import failed ({error})") from error

            for attribute in parts[split:]:
                try:
                    obj = getattr(obj, attribute)
                except AttributeError as error:
                    msg = f"module '{module_name}' has no attribute path '{'.'.join(parts[split:])}'"
                    raise ZenwireIntrospectionError(identifier, msg) from error
            break
        else:
            raise ZenwireIntrospectionError(identifier, "no importable module prefix")

        if not isinstance(obj, type):
            raise ZenwireIntrospectionError(identifier, "object is not a class")

        self._classes_cache[identifier] = obj
        self._modules_cache[identifier] = module_name
        return obj

    def _constructor_type_hints(self, identifier: str, cls: type[Any]) -> dict[str, Any]:
        try:
            type_hints = get_type_hints(cls.__init__)
            if dataclasses.is_dataclass(cls):
                type_hints.update(get_type_hints(cls))
        except (NameError, TypeError) as error:
            raise ZenwireIntrospectionError(identifier, f"cannot evaluate annotations ({error})") from error
        type_hints.pop("return", None)
        return type_hints


_PARAMETER_KINDS = {
    inspect.Parameter.POSITIONAL_ONLY: ParameterKind.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD: ParameterKind.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.KEYWORD_ONLY: ParameterKind.KEYWORD_ONLY,
}


def class_identifier(annotation: Any) -> str | None:
    """Return the identifier of a concrete, non-builtin class annotation.

    Args:
        annotation: Annotation value, possibly wrapped in ``Annotated``.

    """
    annotation = strip_annotated(annotation)
    if annotation is MISSING:
        return None
    if not isinstance(annotation, type) or isinstance(annotation, types.GenericAlias):
        return None
    if annotation.__module__ == "builtins":
        return None
    return f"{annotation.__module__}.{annotation.__qualname__}"


def is_literal_value(value: Any) -> bool:
    """Return True when value round-trips through ``repr`` as a Python literal."""
    value_type = type(value)
    if value is None or value_type in (bool, int, str, bytes):
        return True
    if value_type is float:
        return math.isfinite(value)
    if value_type in (tuple, list, set, frozenset):
        return all(is_literal_value(item) for item in value)
    if value_type is dict:
        return all(is_literal_value(key) and is_literal_value(item) for key, item in value.items())
    return False


def _describe_annotation(annotation: Any) -> str:
    if annotation is inspect.Parameter.empty:
        return ""
    if isinstance(annotation, type):
        return annotation.__qualname__
    return repr(annotation)


__all__ = [
    "MISSING",
    "ClassMetadata",
    "FieldMetadata",
    "MetadataProvider",
    "ParameterKind",
    "ParameterMetadata",
    "ReflectionMetadataProvider",
    "StaticMetadataProvider",
    "class_identifier",
    "is_literal_value",
]
