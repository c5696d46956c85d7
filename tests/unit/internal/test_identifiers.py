from __future__ import annotations

import pytest

from zenwire._internal.identifiers import (
    definition_filename,
    factory_name,
    normalize_overrides,
    proxy_filename,
    proxy_name,
    split_identifier,
    to_identifier,
)
from zenwire.exceptions import ZenwireInvalidConfigurationError
from zenwire.markers import EntryReference
from zenwire_testapp.services import Service


def test_to_identifier_accepts_classes_and_strings() -> None:
    assert to_identifier(Service) == "zenwire_testapp.services.Service"
    assert to_identifier("app.Service") == "app.Service"


@pytest.mark.parametrize("value", ["", 1, None])
def test_to_identifier_rejects_other_values(value: object) -> None:
    with pytest.raises(ZenwireInvalidConfigurationError, match="Expected a class"):
        to_identifier(value)  # type: ignore[arg-type]


def test_generated_names_are_derived_from_identifier() -> None:
    assert factory_name("app.services.UserService") == "app__services__UserService"
    assert proxy_name("app.services.UserService") == "_proxy__app__services__UserService"
    assert definition_filename("app.Mailer") == "app__Mailer.py"
    assert proxy_filename("app.Mailer") == "_proxy__app__Mailer.py"


def test_factory_name_is_always_a_valid_method_name() -> None:
    assert factory_name("class") == "_class"
    assert factory_name("1app.Service") == "_1app__Service"
    assert factory_name("app.Outer.<locals>.Inner") == "app__Outer___locals___Inner"
    assert factory_name("app.Outer.<locals>.Inner").isidentifier()


def test_split_identifier() -> None:
    assert split_identifier("app.services.Service") == ("app.services", "Service")
    assert split_identifier("Service") == ("", "Service")


def test_normalize_overrides_keeps_literals_and_references() -> None:
    reference = EntryReference("app.Transport")

    overrides = normalize_overrides(
        "app.Mailer",
        "parameter",
        {"retries": 3, "hosts": ("a", "b"), "transport": reference},
    )

    assert overrides == {"retries": 3, "hosts": ("a", "b"), "transport": reference}
    assert normalize_overrides("app.Mailer", "field", None) == {}


def test_normalize_overrides_rejects_non_literal_values() -> None:
    with pytest.raises(ZenwireInvalidConfigurationError, match="must be a Python literal"):
        normalize_overrides("app.Mailer", "parameter", {"clock": object()})


def test_normalize_overrides_rejects_invalid_names() -> None:
    with pytest.raises(ZenwireInvalidConfigurationError, match="Invalid field override name"):
        normalize_overrides("app.Mailer", "field", {"not a name": 1})
