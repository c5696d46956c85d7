from __future__ import annotations

from typing import Annotated, ClassVar, get_args, get_origin

from zenwire import EntryReference, Inject
from zenwire.markers import (
    InjectMarker,
    is_class_var_annotation,
    is_inject_annotation,
    strip_annotated,
    strip_class_var,
)
from zenwire_testapp.services import Clock


def test_inject_wraps_the_type_in_annotated() -> None:
    annotation = Inject[Clock]

    assert get_origin(annotation) is Annotated
    assert get_args(annotation)[0] is Clock
    assert isinstance(get_args(annotation)[1], InjectMarker)
    assert strip_annotated(annotation) is Clock


def test_inject_detection() -> None:
    assert is_inject_annotation(Inject[Clock]) is True
    assert is_inject_annotation(ClassVar[Inject[Clock]]) is True
    assert is_inject_annotation(Annotated[Clock, "other"]) is False
    assert is_inject_annotation(Clock) is False


def test_class_var_helpers() -> None:
    assert is_class_var_annotation(ClassVar) is True
    assert is_class_var_annotation(ClassVar[int]) is True
    assert is_class_var_annotation(int) is False
    assert strip_class_var(ClassVar[int]) is int
    assert strip_class_var(int) is int


def test_entry_reference_accepts_classes() -> None:
    assert EntryReference(Clock).identifier == "zenwire_testapp.services.Clock"
    assert EntryReference(Clock) == EntryReference("zenwire_testapp.services.Clock")
