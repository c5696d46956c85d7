from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, ClassVar, TypeVar, Union, get_args, get_origin

T = TypeVar("T")
_ANNOTATED_MARKER_MIN_ARGS = 2


class InjectMarker:
    """A marker used to indicate a field should be injected by the compiled container.

    Only fields carrying this marker take part in field injection; every other
    annotated field is left alone unless it is explicitly overridden.
    """

    def __repr__(self) -> str:
        return "InjectMarker()"


if TYPE_CHECKING:
    Inject = Union[T, T]  # noqa: UP007,PYI016
    """Mark a class field for field injection.

    At runtime ``Inject[T]`` becomes ``Annotated[T, InjectMarker()]``.

    Examples:
        .. code-block:: python

            class UserController:
                users: Inject[UserRepositoryInterface]
                logger: Inject[Logger]

    """

else:

    class Inject:
        """Mark a class field for field injection.

        At runtime ``Inject[T]`` resolves to ``Annotated[T, InjectMarker()]``.
        Wrapping the annotation in ``ClassVar`` is rejected by the resolver with
        ``ZenwireStaticInjectionError``.

        Examples:
            .. code-block:: python

                class UserController:
                    users: Inject[UserRepositoryInterface]

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, InjectMarker]:
            return Annotated[item, InjectMarker()]


@dataclass(frozen=True, slots=True)
class EntryReference:
    """Mark an override value that refers to another entry point.

    Compiled containers retrieve the value through ``get(identifier)`` instead of
    embedding a literal.

    Examples:
        .. code-block:: python

            DefinitionHint.singleton(MailerService).set_parameter(
                "transport",
                EntryReference("app.mail.SmtpTransport"),
            )

    """

    identifier: str

    def __post_init__(self) -> None:
        if isinstance(self.identifier, type):
            identifier = f"{self.identifier.__module__}.{self.identifier.__qualname__}"
            object.__setattr__(self, "identifier", identifier)


def is_inject_annotation(annotation: Any) -> bool:
    """Return True when annotation is Annotated[..., InjectMarker()], possibly inside ClassVar."""
    annotation = strip_class_var(annotation)
    if get_origin(annotation) is not Annotated:
        return False
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return False
    return any(isinstance(item, InjectMarker) for item in annotation_args[1:])


def is_class_var_annotation(annotation: Any) -> bool:
    """Return True when annotation is ClassVar or ClassVar[...]."""
    return annotation is ClassVar or get_origin(annotation) is ClassVar


def strip_class_var(annotation: Any) -> Any:
    """Return the wrapped annotation of ClassVar[...], or the annotation itself."""
    if get_origin(annotation) is ClassVar:
        args = get_args(annotation)
        return args[0] if args else Any
    return annotation


def strip_annotated(annotation: Any) -> Any:
    """Drop every Annotated layer and return the bare type."""
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation


__all__ = [
    "EntryReference",
    "Inject",
    "InjectMarker",
    "is_class_var_annotation",
    "is_inject_annotation",
    "strip_annotated",
    "strip_class_var",
]
