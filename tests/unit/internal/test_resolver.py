from __future__ import annotations

import logging

import pytest
from conftest import GENERATED_CONTAINER_FQCN, make_config

from zenwire import (
    AutoloadConfig,
    ClassEntryPoint,
    ClassMetadata,
    ContextDependentDefinitionHint,
    DefinitionHint,
    DependencyResolver,
    EntryReference,
    FieldMetadata,
    FileBasedDefinitionConfig,
    ParameterMetadata,
    ReflectionMetadataProvider,
    StaticMetadataProvider,
    WildcardHint,
)
from zenwire._internal.definitions import (
    ClassDefinition,
    ContextDependentDefinition,
    DefinitionGraph,
    ReferenceDefinition,
    SelfDefinition,
    SourceKind,
)
from zenwire.container_interface import CONTAINER_INTERFACE_ID
from zenwire.exceptions import (
    ZenwireContextDependentLookupError,
    ZenwireIntrospectionError,
    ZenwireInvalidConfigurationError,
    ZenwireInvalidOverrideError,
    ZenwireNotFoundError,
    ZenwireStaticInjectionError,
    ZenwireUnresolvableTypeError,
)
from zenwire.scope import Scope
from zenwire_testapp.cycles import Left, Parent
from zenwire_testapp.domain import OrderRepositoryInterface, UserRepositoryInterface, UserService
from zenwire_testapp.logging_app import (
    AuditService,
    FileLogger,
    LoggerInterface,
    NullLogger,
    UserController,
)
from zenwire_testapp.services import (
    Clock,
    InMemoryRepository,
    Locator,
    Mailer,
    NeedsPrimitive,
    Notifier,
    RepositoryInterface,
    RequestContext,
    RequestHandler,
    Service,
    SharedState,
)

SERVICE = "zenwire_testapp.services.Service"
REPOSITORY = "zenwire_testapp.services.RepositoryInterface"
IN_MEMORY_REPOSITORY = "zenwire_testapp.services.InMemoryRepository"


def _resolve(**options: object) -> DefinitionGraph:
    config = make_config(**options)
    return DependencyResolver(config, ReflectionMetadataProvider()).resolve_all()


def _class_definition(graph: DefinitionGraph, identifier: str) -> ClassDefinition:
    definition = graph[identifier]
    assert isinstance(definition, ClassDefinition)
    return definition


def test_service_with_bound_interface_builds_expected_graph() -> None:
    graph = _resolve(
        entry_points=[Service],
        definition_hints={RepositoryInterface: InMemoryRepository},
    )

    assert list(graph) == [
        CONTAINER_INTERFACE_ID,
        GENERATED_CONTAINER_FQCN,
        SERVICE,
        REPOSITORY,
        IN_MEMORY_REPOSITORY,
    ]

    service = _class_definition(graph, SERVICE)
    assert service.is_entry_point is True
    assert [argument.source.value for argument in service.constructor_arguments] == [REPOSITORY]

    reference = graph[REPOSITORY]
    assert isinstance(reference, ReferenceDefinition)
    assert reference.referenced_identifier == IN_MEMORY_REPOSITORY
    assert reference.reference_count(SERVICE) == 1

    repository = _class_definition(graph, IN_MEMORY_REPOSITORY)
    assert repository.reference_count(SERVICE) == 1
    assert repository.is_entry_point is False
    assert repository.is_cached() is True


def test_graph_is_seeded_with_the_container_itself() -> None:
    graph = _resolve(entry_points=[])

    interface = graph[CONTAINER_INTERFACE_ID]
    assert isinstance(interface, ReferenceDefinition)
    assert interface.is_self_reference is True
    assert interface.referenced_identifier == GENERATED_CONTAINER_FQCN
    assert isinstance(graph[GENERATED_CONTAINER_FQCN], SelfDefinition)
    assert len(graph) == 2


def test_container_interface_dependency_is_counted_on_the_self_reference() -> None:
    graph = _resolve(entry_points=[Locator])

    locator = _class_definition(graph, "zenwire_testapp.services.Locator")
    assert locator.class_dependencies() == (CONTAINER_INTERFACE_ID,)
    assert graph[CONTAINER_INTERFACE_ID].reference_count("zenwire_testapp.services.Locator") == 1


def test_resolution_is_complete_and_idempotent_across_passes() -> None:
    config = make_config(
        entry_points=[Service, Notifier, Mailer],
        definition_hints={RepositoryInterface: InMemoryRepository},
    )
    resolver = DependencyResolver(config, ReflectionMetadataProvider())

    first = resolver.resolve_all()
    second = resolver.resolve_all()

    assert first is not second
    assert list(first) == list(second)
    for identifier, definition in first.items():
        for dependency in definition.class_dependencies():
            assert dependency in first
        if isinstance(definition, ClassDefinition):
            assert definition.references == _class_definition(second, identifier).references


def test_optional_parameters_use_literal_defaults_or_are_omitted() -> None:
    graph = _resolve(entry_points=[Mailer])

    mailer = _class_definition(graph, "zenwire_testapp.services.Mailer")
    sources = {argument.name: argument.source for argument in mailer.constructor_arguments}
    assert sources["clock"].kind is SourceKind.CLASS
    assert sources["host"].kind is SourceKind.VALUE
    assert sources["host"].value == "localhost"
    assert sources["retries"].value == 3
    assert sources["tags"].value == frozenset()

    clock = _class_definition(graph, "zenwire_testapp.services.Clock")
    assert [argument.source.kind for argument in clock.constructor_arguments] == [SourceKind.OMITTED]


def test_entry_point_overrides_replace_injected_values() -> None:
    graph = _resolve(
        entry_points=[
            ClassEntryPoint(
                Mailer,
                parameters={"host": "smtp.example.com", "clock": EntryReference(Clock)},
            ),
        ],
    )

    mailer = _class_definition(graph, "zenwire_testapp.services.Mailer")
    sources = {argument.name: argument.source for argument in mailer.constructor_arguments}
    assert sources["host"].value == "smtp.example.com"
    assert sources["clock"].kind is SourceKind.REFERENCE
    assert sources["clock"].value == "zenwire_testapp.services.Clock"
    assert "zenwire_testapp.services.Clock" not in graph


def test_hint_overrides_win_over_entry_point_overrides() -> None:
    graph = _resolve(
        entry_points=[ClassEntryPoint(Mailer, parameters={"retries": 1, "host": "smtp"})],
        definition_hints={Mailer: DefinitionHint.singleton(Mailer).set_parameter("retries", 5)},
    )

    mailer = _class_definition(graph, "zenwire_testapp.services.Mailer")
    sources = {argument.name: argument.source.value for argument in mailer.constructor_arguments}
    assert sources["retries"] == 5
    assert sources["host"] == "smtp"


def test_unknown_parameter_override_is_reported() -> None:
    with pytest.raises(ZenwireInvalidOverrideError, match="constructor parameters") as error:
        _resolve(entry_points=[ClassEntryPoint(Mailer, parameters={"missing": 1})])

    assert error.value.identifier == "zenwire_testapp.services.Mailer"
    assert error.value.names == ("missing",)
    assert "missing" in str(error.value)


def test_unknown_field_override_is_reported() -> None:
    with pytest.raises(ZenwireInvalidOverrideError, match="which don't exist: unknown"):
        _resolve(
            entry_points=[ClassEntryPoint(Notifier, fields={"unknown": 1})],
            definition_hints={RepositoryInterface: InMemoryRepository},
        )


def test_injected_fields_and_field_overrides() -> None:
    graph = _resolve(
        entry_points=[ClassEntryPoint(Notifier, fields={"label": "alerts"})],
        definition_hints={RepositoryInterface: InMemoryRepository},
    )

    notifier = _class_definition(graph, "zenwire_testapp.services.Notifier")
    fields = {injected.name: injected.source for injected in notifier.fields}
    assert fields["mailer"].value == "zenwire_testapp.services.Mailer"
    assert fields["service"].value == SERVICE
    assert fields["label"].kind is SourceKind.VALUE
    assert fields["label"].value == "alerts"


def test_disabled_injection_styles_skip_members() -> None:
    graph = _resolve(
        entry_points=[Service, Notifier],
        use_constructor_injection=False,
        use_field_injection=False,
    )

    assert _class_definition(graph, SERVICE).constructor_arguments == []
    assert _class_definition(graph, "zenwire_testapp.services.Notifier").fields == []
    assert REPOSITORY not in graph


def test_cycles_terminate_and_count_both_directions() -> None:
    graph = _resolve(entry_points=[Parent, Left])

    parent = _class_definition(graph, "zenwire_testapp.cycles.Parent")
    child = _class_definition(graph, "zenwire_testapp.cycles.Child")
    left = _class_definition(graph, "zenwire_testapp.cycles.Left")
    right = _class_definition(graph, "zenwire_testapp.cycles.Right")

    assert child.reference_count("zenwire_testapp.cycles.Parent") == 1
    assert parent.reference_count("zenwire_testapp.cycles.Child") == 1
    assert right.reference_count("zenwire_testapp.cycles.Left") == 1
    assert left.reference_count("zenwire_testapp.cycles.Right") == 1


def test_wildcard_hint_binds_matching_interfaces() -> None:
    graph = _resolve(
        entry_points=[UserService],
        wildcard_hints=[
            WildcardHint.singleton(
                "zenwire_testapp.domain.*RepositoryInterface",
                "zenwire_testapp.infrastructure.Mysql*Repository",
            ),
        ],
    )

    users = graph[f"zenwire_testapp.domain.{UserRepositoryInterface.__name__}"]
    orders = graph[f"zenwire_testapp.domain.{OrderRepositoryInterface.__name__}"]
    assert isinstance(users, ReferenceDefinition)
    assert isinstance(orders, ReferenceDefinition)
    assert users.referenced_identifier == "zenwire_testapp.infrastructure.MysqlUserRepository"
    assert orders.referenced_identifier == "zenwire_testapp.infrastructure.MysqlOrderRepository"
    assert "zenwire_testapp.infrastructure.MysqlUserRepository" in graph


def test_exact_hint_wins_over_wildcard_hint() -> None:
    graph = _resolve(
        entry_points=[UserService],
        definition_hints={
            UserRepositoryInterface: "zenwire_testapp.infrastructure.MysqlOrderRepository",
        },
        wildcard_hints=[
            WildcardHint.singleton(
                "zenwire_testapp.domain.*RepositoryInterface",
                "zenwire_testapp.infrastructure.Mysql*Repository",
            ),
        ],
    )

    users = graph["zenwire_testapp.domain.UserRepositoryInterface"]
    assert isinstance(users, ReferenceDefinition)
    assert users.referenced_identifier == "zenwire_testapp.infrastructure.MysqlOrderRepository"


def test_prototype_hint_changes_scope_and_caching_of_dependencies() -> None:
    graph = _resolve(
        entry_points=[RequestHandler],
        definition_hints={RequestContext: DefinitionHint.prototype(RequestContext)},
    )

    context = _class_definition(graph, "zenwire_testapp.services.RequestContext")
    clock = _class_definition(graph, f"zenwire_testapp.services.{Clock.__name__}")
    assert context.scope is Scope.PROTOTYPE
    assert context.is_cached() is False
    assert clock.singleton_reference_count() == 0
    assert clock.is_cached() is False


class TestContextDependentResolution:
    def test_consumers_receive_their_branch(self) -> None:
        graph = _resolve(
            entry_points=[UserController, AuditService],
            definition_hints={
                LoggerInterface: (
                    ContextDependentDefinitionHint()
                    .set_class_context(FileLogger, [UserController])
                    .set_default_class(NullLogger)
                ),
            },
        )

        logger_definition = graph["zenwire_testapp.logging_app.LoggerInterface"]
        assert isinstance(logger_definition, ContextDependentDefinition)

        file_logger = _class_definition(graph, "zenwire_testapp.logging_app.FileLogger")
        null_logger = _class_definition(graph, "zenwire_testapp.logging_app.NullLogger")
        assert file_logger.reference_count("zenwire_testapp.logging_app.UserController") == 1
        assert file_logger.reference_count("zenwire_testapp.logging_app.AuditService") == 0
        assert null_logger.reference_count("zenwire_testapp.logging_app.AuditService") == 1

    def test_consumer_without_branch_or_default_is_rejected(self) -> None:
        with pytest.raises(ZenwireContextDependentLookupError, match="AuditService") as error:
            _resolve(
                entry_points=[UserController, AuditService],
                definition_hints={
                    LoggerInterface: ContextDependentDefinitionHint().set_class_context(
                        FileLogger,
                        [UserController],
                    ),
                },
            )

        assert error.value.consumer == "zenwire_testapp.logging_app.AuditService"


def test_static_injection_is_rejected() -> None:
    with pytest.raises(ZenwireStaticInjectionError, match="SharedState.service"):
        _resolve(entry_points=[SharedState])


def test_parameter_without_class_type_is_unresolvable() -> None:
    with pytest.raises(
        ZenwireUnresolvableTypeError,
        match="type declaration 'str' is not a class",
    ) as error:
        _resolve(entry_points=[NeedsPrimitive])

    assert error.value.member == "name"


def test_hint_cycles_are_reported() -> None:
    with pytest.raises(ZenwireInvalidConfigurationError, match="cycle"):
        _resolve(
            entry_points=["app.I"],
            definition_hints={"app.I": "app.J", "app.J": "app.I"},
        )


class TestStaticMetadata:
    def _resolver(self, classes: dict[str, ClassMetadata], **options: object) -> DependencyResolver:
        return DependencyResolver(make_config(**options), StaticMetadataProvider(classes))

    def test_static_metadata_drives_resolution(self) -> None:
        resolver = self._resolver(
            {
                "app.A": ClassMetadata(
                    parameters=(ParameterMetadata(name="b", type="app.B"),),
                    fields=(FieldMetadata(name="c", type="app.C", is_injectable=True),),
                ),
                "app.B": ClassMetadata(),
                "app.C": ClassMetadata(),
            },
            entry_points=["app.A"],
        )

        graph = resolver.resolve_all()

        assert list(graph)[2:] == ["app.A", "app.B", "app.C"]
        assert _class_definition(graph, "app.A").class_dependencies() == ("app.B", "app.C")

    def test_missing_dependency_metadata_names_the_consumer(self) -> None:
        resolver = self._resolver(
            {"app.A": ClassMetadata(parameters=(ParameterMetadata(name="b", type="app.B"),))},
            entry_points=["app.A"],
        )

        with pytest.raises(ZenwireIntrospectionError, match="Required by 'app.A'") as error:
            resolver.resolve_all()

        assert error.value.identifier == "app.B"
        assert error.value.consumer == "app.A"

    def test_missing_entry_point_metadata_has_no_consumer(self) -> None:
        resolver = self._resolver({}, entry_points=["app.A"])

        with pytest.raises(ZenwireIntrospectionError) as error:
            resolver.resolve_all()

        assert error.value.consumer is None

    def test_class_modules_are_recorded_in_the_graph(self) -> None:
        resolver = self._resolver(
            {"app.Outer.Inner": ClassMetadata(module="app"), "app.B": ClassMetadata()},
            entry_points=["app.Outer.Inner", "app.B"],
        )

        graph = resolver.resolve_all()

        assert graph.module_of("app.Outer.Inner") == "app"
        assert graph.module_of("app.B") == "app"

    def test_module_outside_the_identifier_is_rejected(self) -> None:
        resolver = self._resolver(
            {"app.A": ClassMetadata(module="other")},
            entry_points=["app.A"],
        )

        with pytest.raises(ZenwireIntrospectionError, match="module 'other' is not a prefix"):
            resolver.resolve_all()


class TestResolveOne:
    def test_unknown_identifier_is_not_found(self) -> None:
        resolver = DependencyResolver(make_config(entry_points=[Service]), ReflectionMetadataProvider())

        with pytest.raises(ZenwireNotFoundError, match="app.Missing"):
            resolver.resolve_one("app.Missing")

    def test_runtime_resolution_never_places_definitions_in_files(self) -> None:
        config = make_config(
            entry_points=[Service],
            definition_hints={RepositoryInterface: InMemoryRepository},
            file_based_definitions=FileBasedDefinitionConfig(
                global_file_based_definitions_enabled=True,
            ),
        )
        resolver = DependencyResolver(config, ReflectionMetadataProvider())

        assert _class_definition(resolver.resolve_all(), SERVICE).is_file_based is True
        runtime_graph = resolver.resolve_one(SERVICE)
        assert _class_definition(runtime_graph, SERVICE).is_file_based is False
        assert _class_definition(runtime_graph, IN_MEMORY_REPOSITORY).is_file_based is False

    def test_runtime_resolution_does_not_mark_autoloading(self) -> None:
        config = make_config(
            entry_points=[Service],
            definition_hints={RepositoryInterface: InMemoryRepository},
            autoload=AutoloadConfig(global_autoload_enabled=True),
        )
        resolver = DependencyResolver(config, ReflectionMetadataProvider())

        assert _class_definition(resolver.resolve_all(), SERVICE).is_autoloaded is True
        assert _class_definition(resolver.resolve_one(SERVICE), SERVICE).is_autoloaded is False


def test_autoload_respects_exclusions() -> None:
    graph = _resolve(
        entry_points=[Service, ClassEntryPoint(Mailer, autoloaded=False), Locator],
        definition_hints={RepositoryInterface: InMemoryRepository},
        autoload=AutoloadConfig(
            global_autoload_enabled=True,
            excluded_classes=("zenwire_testapp.services.Locator",),
        ),
    )

    assert _class_definition(graph, SERVICE).is_autoloaded is True
    assert _class_definition(graph, "zenwire_testapp.services.Mailer").is_autoloaded is False
    assert _class_definition(graph, "zenwire_testapp.services.Locator").is_autoloaded is False
    assert _class_definition(graph, IN_MEMORY_REPOSITORY).is_autoloaded is False


def test_resolution_summary_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="zenwire._internal.resolver"):
        _resolve(entry_points=[Service], definition_hints={RepositoryInterface: InMemoryRepository})

    assert "Resolved container graph: entry_point_count=1 definition_count=5" in caplog.text
