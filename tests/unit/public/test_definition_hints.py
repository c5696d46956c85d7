from __future__ import annotations

import pytest

from zenwire import (
    ClassEntryPoint,
    ContextDependentDefinitionHint,
    DefinitionHint,
    Scope,
    WildcardHint,
    ZenwireInvalidConfigurationError,
)
from zenwire._internal.definitions import (
    ClassDefinition,
    ContextDependentDefinition,
    ReferenceDefinition,
)
from zenwire.hints import as_hint
from zenwire_testapp.logging_app import AuditService, FileLogger, NullLogger, UserController
from zenwire_testapp.services import InMemoryRepository, Mailer

REPOSITORY = "zenwire_testapp.services.RepositoryInterface"
IN_MEMORY_REPOSITORY = "zenwire_testapp.services.InMemoryRepository"


class TestDefinitionHint:
    def test_interface_binding_yields_reference_and_class(self) -> None:
        hint = DefinitionHint.prototype(InMemoryRepository)

        definitions = hint.to_definitions({}, {}, REPOSITORY, False)

        assert [identifier for identifier, _ in definitions] == [REPOSITORY, IN_MEMORY_REPOSITORY]
        reference, target = (definition for _, definition in definitions)
        assert isinstance(reference, ReferenceDefinition)
        assert reference.referenced_identifier == IN_MEMORY_REPOSITORY
        assert reference.scope is Scope.PROTOTYPE
        assert isinstance(target, ClassDefinition)
        assert target.scope is Scope.PROTOTYPE

    def test_self_binding_yields_only_the_class(self) -> None:
        hint = DefinitionHint.singleton(Mailer).set_parameter("retries", 5).set_field("label", "x")

        definitions = hint.to_definitions(
            {"zenwire_testapp.services.Mailer": ClassEntryPoint(Mailer)},
            {},
            "zenwire_testapp.services.Mailer",
            True,
        )

        assert len(definitions) == 1
        _, definition = definitions[0]
        assert isinstance(definition, ClassDefinition)
        assert definition.is_entry_point is True
        assert definition.is_file_based is True
        assert definition.parameter_overrides == {"retries": 5}
        assert definition.field_overrides == {"label": "x"}

    def test_target_with_its_own_hint_uses_the_sibling(self) -> None:
        hints = {
            IN_MEMORY_REPOSITORY: DefinitionHint.prototype(InMemoryRepository),
        }

        definitions = DefinitionHint.singleton(InMemoryRepository).to_definitions(
            {},
            hints,
            REPOSITORY,
            False,
        )

        target = dict(definitions)[IN_MEMORY_REPOSITORY]
        assert isinstance(target, ClassDefinition)
        assert target.scope is Scope.PROTOTYPE

    def test_non_literal_override_is_rejected(self) -> None:
        with pytest.raises(ZenwireInvalidConfigurationError, match="must be a Python literal"):
            DefinitionHint.singleton(Mailer).set_parameter("clock", object())

    def test_bare_classes_and_strings_become_singleton_hints(self) -> None:
        from_class = as_hint(InMemoryRepository)
        from_string = as_hint(IN_MEMORY_REPOSITORY)

        assert isinstance(from_class, DefinitionHint)
        assert isinstance(from_string, DefinitionHint)
        assert from_class.class_name == from_string.class_name == IN_MEMORY_REPOSITORY
        assert from_class.scope is Scope.SINGLETON


class TestWildcardHint:
    def test_captures_are_substituted_in_order(self) -> None:
        hint = WildcardHint.singleton("app.*.*Interface", "app.impl.*.Default*")

        assert hint.matches("app.users.RepositoryInterface") is True
        assert hint.class_name_for("app.users.RepositoryInterface") == "app.impl.users.DefaultRepository"

    def test_placeholders_do_not_cross_module_separators(self) -> None:
        hint = WildcardHint.prototype("app.*Interface", "app.*")

        assert hint.matches("app.LoggerInterface") is True
        assert hint.matches("app.sub.LoggerInterface") is False
        assert hint.scope is Scope.PROTOTYPE

    def test_mismatched_placeholder_counts_are_rejected(self) -> None:
        with pytest.raises(ZenwireInvalidConfigurationError, match="same, non-zero number"):
            WildcardHint.singleton("app.*.*Interface", "app.*")

        with pytest.raises(ZenwireInvalidConfigurationError, match="same, non-zero number"):
            WildcardHint.singleton("app.Interface", "app.Implementation")

    def test_non_matching_identifier_is_rejected(self) -> None:
        hint = WildcardHint.singleton("app.*Interface", "app.*")

        with pytest.raises(ZenwireInvalidConfigurationError, match="does not match"):
            hint.class_name_for("other.Thing")


class TestContextDependentDefinitionHint:
    def test_branches_and_default_are_built_per_consumer(self) -> None:
        hint = (
            ContextDependentDefinitionHint()
            .set_class_context(FileLogger, [UserController])
            .set_default_class(NullLogger)
        )

        definitions = hint.to_definitions({}, {}, "zenwire_testapp.logging_app.LoggerInterface", False)

        identifier, definition = definitions[0]
        assert identifier == "zenwire_testapp.logging_app.LoggerInterface"
        assert isinstance(definition, ContextDependentDefinition)
        branch = definition.branch_for("zenwire_testapp.logging_app.UserController")
        default = definition.branch_for("zenwire_testapp.logging_app.AuditService")
        assert isinstance(branch, ReferenceDefinition)
        assert branch.referenced_identifier == "zenwire_testapp.logging_app.FileLogger"
        assert isinstance(default, ReferenceDefinition)
        assert default.referenced_identifier == "zenwire_testapp.logging_app.NullLogger"
        assert {identifier for identifier, _ in definitions[1:]} == {
            "zenwire_testapp.logging_app.FileLogger",
            "zenwire_testapp.logging_app.NullLogger",
        }

    def test_constructor_arguments_are_equivalent_to_the_fluent_api(self) -> None:
        hint = ContextDependentDefinitionHint(
            default=NullLogger,
            contexts={AuditService: DefinitionHint.prototype(FileLogger)},
        )

        assert hint.default is not None
        assert hint.default.class_name == "zenwire_testapp.logging_app.NullLogger"
        assert hint.contexts["zenwire_testapp.logging_app.AuditService"].scope is Scope.PROTOTYPE

    def test_binding_an_identifier_to_itself_is_rejected(self) -> None:
        hint = ContextDependentDefinitionHint().set_default_class(
            "zenwire_testapp.logging_app.LoggerInterface",
        )

        with pytest.raises(ZenwireInvalidConfigurationError, match="cannot be bound to itself"):
            hint.to_definitions({}, {}, "zenwire_testapp.logging_app.LoggerInterface", False)
