from zenwire._internal.compiler.compiler import CompilationResult, Compiler
from zenwire._internal.definitions import DefinitionGraph
from zenwire._internal.resolver import DependencyResolver
from zenwire.builder import ContainerBuilder
from zenwire.compiled_container import AbstractCompiledContainer
from zenwire.config import (
    AutoloadConfig,
    CompilerConfig,
    ContainerConfig,
    FileBasedDefinitionConfig,
)
from zenwire.container_interface import ContainerInterface
from zenwire.entry_points import ClassEntryPoint, EntryPoint, ModuleEntryPoint
from zenwire.exceptions import (
    ZenwireContextDependentLookupError,
    ZenwireEmissionError,
    ZenwireError,
    ZenwireIntrospectionError,
    ZenwireInvalidConfigurationError,
    ZenwireInvalidOverrideError,
    ZenwireNotFoundError,
    ZenwireStaticInjectionError,
    ZenwireUnresolvableTypeError,
)
from zenwire.hints import ContextDependentDefinitionHint, DefinitionHint, WildcardHint
from zenwire.markers import EntryReference, Inject
from zenwire.metadata import (
    ClassMetadata,
    FieldMetadata,
    MetadataProvider,
    ParameterKind,
    ParameterMetadata,
    ReflectionMetadataProvider,
    StaticMetadataProvider,
)
from zenwire.scope import Scope

__all__ = [
    "AbstractCompiledContainer",
    "AutoloadConfig",
    "ClassEntryPoint",
    "ClassMetadata",
    "CompilationResult",
    "Compiler",
    "CompilerConfig",
    "ContainerBuilder",
    "ContainerConfig",
    "ContainerInterface",
    "ContextDependentDefinitionHint",
    "DefinitionGraph",
    "DefinitionHint",
    "DependencyResolver",
    "EntryPoint",
    "EntryReference",
    "FieldMetadata",
    "FileBasedDefinitionConfig",
    "Inject",
    "MetadataProvider",
    "ModuleEntryPoint",
    "ParameterKind",
    "ParameterMetadata",
    "ReflectionMetadataProvider",
    "Scope",
    "StaticMetadataProvider",
    "WildcardHint",
    "ZenwireContextDependentLookupError",
    "ZenwireEmissionError",
    "ZenwireError",
    "ZenwireIntrospectionError",
    "ZenwireInvalidConfigurationError",
    "ZenwireInvalidOverrideError",
    "ZenwireNotFoundError",
    "ZenwireStaticInjectionError",
    "ZenwireUnresolvableTypeError",
]
