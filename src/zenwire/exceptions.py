from __future__ import annotations

from collections.abc import Iterable


class ZenwireError(Exception):
    """Represent a base class for all zenwire-specific failures.

    Catch this type when you want to handle any resolution or compilation
    failure without matching each concrete exception class individually.
    Every zenwire error is fatal to the current pass: no artifacts are produced.
    """


class ZenwireInvalidConfigurationError(ZenwireError):
    """Signal malformed compiler configuration.

    Raised while building ``CompilerConfig``, entry points, or definition hints,
    for example for a wildcard hint whose patterns do not share the same number
    of ``*`` placeholders, or for an override value that cannot be written as a
    Python literal.
    """


class ZenwireNotFoundError(ZenwireError):
    """Signal that a requested identifier is not a declared entry point.

    Raised by ``DependencyResolver.resolve_one`` and by compiled containers when
    ``get`` is called with an identifier that has no public factory.

    Typical fix is declaring the identifier through a ``ClassEntryPoint`` or a
    ``ModuleEntryPoint`` and recompiling the container.
    """

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Entry point '{identifier}' is not declared in the container.")


class ZenwireUnresolvableTypeError(ZenwireError):
    """Signal a constructor parameter or field without an injectable type.

    Raised when a member has no override, no default value, and the metadata
    provider cannot determine a concrete class for it (missing annotation,
    builtin type, union, ...).

    Typical fixes include annotating the member with a concrete class, giving
    it a default value, or overriding it with ``set_parameter``/``set_field``.
    """

    def __init__(self, identifier: str, member: str, reason: str) -> None:
        self.identifier = identifier
        self.member = member
        self.reason = reason
        super().__init__(f"Cannot inject '{member}' of class '{identifier}': {reason}.")


class ZenwireInvalidOverrideError(ZenwireError):
    """Signal overrides naming members that do not exist on the target class.

    Raised after all constructor parameters (or fields) of a class have been
    discovered and some configured override names are left unmatched.
    """

    def __init__(self, identifier: str, member_kind: str, names: Iterable[str]) -> None:
        self.identifier = identifier
        self.member_kind = member_kind
        self.names = tuple(names)
        super().__init__(
            f"Class '{identifier}' has the following overridden {member_kind} which don't "
            f"exist: {', '.join(self.names)}.",
        )


class ZenwireStaticInjectionError(ZenwireError):
    """Signal an injection marker on a class-level field.

    Raised for ``ClassVar[Inject[T]]`` annotations: class attributes are shared
    by every instance and cannot be injected per instance.
    """

    def __init__(self, identifier: str, member: str) -> None:
        self.identifier = identifier
        self.member = member
        super().__init__(
            f"Field '{identifier}.{member}' is a class variable and can't be injected upon.",
        )


class ZenwireContextDependentLookupError(ZenwireError):
    """Signal a context-dependent identifier used without a matching binding.

    Raised by the resolver when a consumer requests a context-dependent
    identifier that has neither a binding for that consumer nor a default, and
    by compiled containers when such an identifier is retrieved directly.

    Typical fix is adding ``set_default_class`` or a ``set_class_context``
    binding for the consumer.
    """

    def __init__(self, identifier: str, consumer: str | None = None) -> None:
        self.identifier = identifier
        self.consumer = consumer
        if consumer is None:
            message = (
                f"Context-dependent definition '{identifier}' doesn't have a default value, "
                "therefore it cannot be retrieved directly."
            )
        else:
            message = (
                f"Context-dependent definition '{identifier}' can't be injected into "
                f"'{consumer}': no binding for this consumer and no default."
            )
        super().__init__(message)


class ZenwireIntrospectionError(ZenwireError):
    """Signal that the metadata provider cannot load or inspect an identifier.

    The ``consumer`` attribute names the class that requested the identifier
    when the failure happened while resolving one of its dependencies.
    """

    def __init__(self, identifier: str, reason: str, consumer: str | None = None) -> None:
        self.identifier = identifier
        self.reason = reason
        self.consumer = consumer
        message = f"Cannot introspect class '{identifier}': {reason}."
        if consumer:
            message = f"{message} Required by '{consumer}'."
        super().__init__(message)


class ZenwireEmissionError(ZenwireError):
    """Signal a definition graph the compiler cannot render.

    Raised when a definition refers to an identifier that is missing from the
    graph, which means the graph was not produced by a completed resolver pass.
    """
