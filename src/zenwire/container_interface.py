from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TypeVar, overload

T = TypeVar("T")

CONTAINER_INTERFACE_ID = "zenwire.container_interface.ContainerInterface"
"""Identifier that compiled containers bind to themselves."""


class ContainerInterface(ABC):
    """Interface for compiled containers.

    Classes that need the container itself can depend on this interface; the
    compiled container injects itself.
    """

    @overload
    @abstractmethod
    def get(self, identifier: type[T]) -> T: ...

    @overload
    @abstractmethod
    def get(self, identifier: str) -> Any: ...

    @abstractmethod
    def get(self, identifier: Any) -> Any:
        """Return the entry registered for an identifier or a class."""

    @abstractmethod
    def has(self, identifier: str | type[Any]) -> bool:
        """Return whether the identifier is a public entry point of the container."""
