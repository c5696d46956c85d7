from __future__ import annotations

from enum import Enum


class Scope(Enum):
    """Define how often a compiled container builds an identifier.

    The effective emitted shape also depends on reference counts collected by
    the resolver, see ``ClassDefinition.is_cached``.
    """

    SINGLETON = "singleton"
    """Build once per container instance and reuse the cached entry."""

    PROTOTYPE = "prototype"
    """Build a fresh instance for every retrieval."""
