from __future__ import annotations

import keyword
import re
from collections.abc import Mapping
from typing import Any

from zenwire.exceptions import ZenwireInvalidConfigurationError
from zenwire.markers import EntryReference
from zenwire.metadata import is_literal_value

_NON_IDENTIFIER_CHARACTERS = re.compile(r"\W")
_PROXY_PREFIX = "_proxy__"
_DEFINITION_FILE_SUFFIX = ".py"


def to_identifier(value: str | type[Any]) -> str:
    """Return the identifier for a class or an identifier string.

    Args:
        value: A class object or an already dotted identifier.

    """
    if isinstance(value, type):
        return f"{value.__module__}.{value.__qualname__}"
    if not isinstance(value, str) or not value:
        msg = f"Expected a class or a non-empty identifier string, got {value!r}."
        raise ZenwireInvalidConfigurationError(msg)
    return value


def factory_name(identifier: str) -> str:
    """Derive the factory method name of an identifier (``a.b.C`` -> ``a__b__C``)."""
    name = _NON_IDENTIFIER_CHARACTERS.sub("_", identifier.replace(".", "__"))
    if not name or name[0].isdigit() or keyword.iskeyword(name):
        name = f"_{name}"
    return name


def proxy_name(identifier: str) -> str:
    return f"{_PROXY_PREFIX}{factory_name(identifier)}"


def definition_filename(identifier: str) -> str:
    return f"{factory_name(identifier)}{_DEFINITION_FILE_SUFFIX}"


def proxy_filename(identifier: str) -> str:
    return f"{proxy_name(identifier)}{_DEFINITION_FILE_SUFFIX}"


def split_identifier(identifier: str) -> tuple[str, str]:
    """Split an identifier into its module path and class name.

    The module path is empty for identifiers without a dot.
    """
    module, _, name = identifier.rpartition(".")
    return module, name


def normalize_overrides(
    owner: str,
    member_kind: str,
    overrides: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Validate override values and return them as a plain dict.

    Args:
        owner: Identifier of the class the overrides belong to, used in errors.
        member_kind: ``"parameter"`` or ``"field"``, used in errors.
        overrides: Mapping of member name to a literal or ``EntryReference``.

    """
    normalized: dict[str, Any] = {}
    for name, value in (overrides or {}).items():
        if not isinstance(name, str) or not name.isidentifier():
            msg = f"Invalid {member_kind} override name {name!r} for '{owner}'."
            raise ZenwireInvalidConfigurationError(msg)
        if not isinstance(value, EntryReference) and not is_literal_value(value):
            msg = (
                f"Override of {member_kind} '{name}' for '{owner}' must be a Python literal "
                f"or an EntryReference, got {type(value).__name__}."
            )
            raise ZenwireInvalidConfigurationError(msg)
        normalized[name] = value
    return normalized
