from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version
from textwrap import indent
from typing import Any, assert_never

from zenwire._internal.compiler.fragments import (
    CONTAINER_MODULE_FRAGMENT,
    DEFINITION_FILE_FRAGMENT,
    INIT_METHOD_FRAGMENT,
    METHOD_FRAGMENT,
)
from zenwire._internal.compiler.mini_template import Environment
from zenwire._internal.compiler.planner import (
    ContainerPlan,
    FactoryPlan,
    ProxyPlan,
)
from zenwire._internal.definitions import (
    ArgumentSource,
    AutoloadedDefinition,
    ClassDefinition,
    ContextDependentDefinition,
    Definition,
    DefinitionGraph,
    ReferenceDefinition,
    SelfDefinition,
    SourceKind,
)
from zenwire._internal.identifiers import definition_filename, factory_name
from zenwire.exceptions import ZenwireEmissionError
from zenwire.metadata import ParameterKind

_INDENT = " " * 4
_GENERATOR_SOURCE = "zenwire._internal.compiler.compiler.Compiler.compile"


@dataclass(frozen=True, slots=True)
class CompilationResult:
    """Source code produced for one compiled container.

    ``main`` is the container module. ``auxiliary`` maps file names inside the
    definition directory to the source of file-based definitions and proxies.
    """

    main: str
    auxiliary: Mapping[str, str] = field(default_factory=dict)


class ContainerRenderer:
    """Render a container plan into Python source code."""

    def __init__(self, *, plan: ContainerPlan, graph: DefinitionGraph) -> None:
        self._plan = plan
        self._graph = graph
        env = Environment()
        self._module_template = env.from_string(CONTAINER_MODULE_FRAGMENT)
        self._definition_file_template = env.from_string(DEFINITION_FILE_FRAGMENT)
        self._init_method_template = env.from_string(INIT_METHOD_FRAGMENT)
        self._method_template = env.from_string(METHOD_FRAGMENT)

    def render(self) -> CompilationResult:
        auxiliary: dict[str, str] = {}
        methods: list[str] = []

        for proxy in self._plan.proxies:
            methods.extend(self._render_proxy(proxy=proxy, auxiliary=auxiliary))

        for factory in self._plan.factories:
            methods.extend(self._render_factory(factory=factory, auxiliary=auxiliary))

        main = self._module_template.render(
            module_docstring_block=self._docstring_block(
                lines=self._module_docstring_lines(),
                depth=0,
            ),
            uses_context_lookup_error=self._uses_context_lookup_error(),
            class_name=self._plan.class_name,
            class_docstring_block=self._docstring_block(
                lines=[f"Compiled container with {len(self._plan.entry_points)} entry points."],
                depth=1,
            ),
            entry_points_block=self._entry_points_block(),
            definition_directory=_quote(self._plan.definition_directory),
            init_method_block=self._render_init_method(),
            methods_block="\n\n".join(indent(method, _INDENT) for method in methods),
        )
        return CompilationResult(main=f"{main.rstrip()}\n", auxiliary=auxiliary)

    def _render_proxy(self, *, proxy: ProxyPlan, auxiliary: dict[str, str]) -> list[str]:
        identifier = proxy.definition.identifier
        body_lines = [f"self._include({_quote(module)})" for module in proxy.included_modules]
        body_lines.append(
            f"self._entry_points[{_quote(identifier)}] = {_quote(proxy.target_method_name)}",
        )
        if proxy.target_filename is not None:
            body_lines.append(f"return self._require({_quote(proxy.target_filename)})")
        else:
            body_lines.append(f"return self.{proxy.target_method_name}()")

        docstring_lines = [f"Activate the modules of {identifier} and build it."]
        if proxy.filename is None:
            return [self._render_method(proxy.method_name, docstring_lines, body_lines)]

        auxiliary[proxy.filename] = self._render_definition_file(
            identifier=identifier,
            body_lines=body_lines,
        )
        return [
            self._render_method(
                proxy.method_name,
                docstring_lines,
                [f"return self._require({_quote(proxy.filename)})"],
            ),
        ]

    def _render_factory(self, *, factory: FactoryPlan, auxiliary: dict[str, str]) -> list[str]:
        body_lines = self._factory_body_lines(factory.definition)
        docstring_lines = [self._factory_summary(factory.definition)]
        if factory.filename is None:
            return [self._render_method(factory.method_name, docstring_lines, body_lines)]

        auxiliary[factory.filename] = self._render_definition_file(
            identifier=factory.identifier,
            body_lines=body_lines,
        )
        if not factory.emits_method:
            return []
        return [
            self._render_method(
                factory.method_name,
                [f"Load {factory.identifier} from {factory.filename}."],
                [f"return self._require({_quote(factory.filename)})"],
            ),
        ]

    def _render_init_method(self) -> str:
        modules = self._plan.always_autoloaded_modules
        if not modules:
            return ""
        body_lines = [f"self._include({_quote(module)})" for module in modules]
        method = self._init_method_template.render(
            body_block=self._join_lines(self._indent_lines(body_lines, 1)),
        )
        return indent(method, _INDENT)

    def _render_method(
        self,
        method_name: str,
        docstring_lines: list[str],
        body_lines: list[str],
    ) -> str:
        return self._method_template.render(
            method_name=method_name,
            docstring_block=self._docstring_block(lines=docstring_lines, depth=1),
            body_block=self._join_lines(self._indent_lines(body_lines, 1)),
        )

    def _render_definition_file(self, *, identifier: str, body_lines: list[str]) -> str:
        rendered = self._definition_file_template.render(
            module_docstring_block=self._docstring_block(
                lines=[f"Generated definition of {identifier} for {self._plan.container_fqcn}."],
                depth=0,
            ),
            body_block=self._join_lines(self._indent_lines(body_lines, 1)),
        )
        return f"{rendered.rstrip()}\n"

    def _factory_body_lines(self, definition: Definition) -> list[str]:
        match definition:
            case SelfDefinition():
                return ["return self"]
            case ReferenceDefinition() if definition.is_self_reference:
                return ["return self"]
            case ReferenceDefinition():
                target = self._dependency_expression(
                    definition.referenced_identifier,
                    consumer=definition.identifier,
                )
                return [f"return {target}"]
            case ClassDefinition():
                return self._class_body_lines(definition)
            case ContextDependentDefinition():
                if definition.default is None:
                    return [
                        f"raise ZenwireContextDependentLookupError({_quote(definition.identifier)})",
                    ]
                default = self._definition_expression(definition.default, consumer=None)
                return [f"return {default}"]
            case AutoloadedDefinition():
                msg = f"Autoloaded definition of '{definition.identifier}' is emitted as a proxy."
                raise ZenwireEmissionError(msg)
            case _:
                assert_never(definition)

    def _class_body_lines(self, definition: ClassDefinition) -> list[str]:
        module = self._graph.module_of(definition.identifier)
        if not module:
            msg = f"Identifier '{definition.identifier}' has no module part and cannot be imported."
            raise ZenwireEmissionError(msg)

        build_lines = [
            f"import {module}",
            *self._constructor_call_lines(definition, target=definition.identifier),
        ]
        field_lines = [
            f"entry.{injected.name} = "
            f"{self._source_expression(injected.source, consumer=definition.identifier)}"
            for injected in definition.fields
        ]
        if definition.is_cached():
            return self._cached_lines(
                definition.identifier,
                build_lines=build_lines,
                field_lines=field_lines,
            )
        return [*build_lines, *field_lines, "return entry"]

    def _cached_lines(
        self,
        identifier: str,
        *,
        build_lines: list[str],
        field_lines: list[str],
    ) -> list[str]:
        key = _quote(identifier)
        return [
            "with self._lock:",
            f"{_INDENT}if {key} in self._singletons:",
            f"{_INDENT * 2}return self._singletons[{key}]",
            *self._indent_lines(build_lines, 1),
            f"{_INDENT}self._singletons[{key}] = entry",
            *self._indent_lines(field_lines, 1),
            f"{_INDENT}return entry",
        ]

    def _constructor_call_lines(self, definition: ClassDefinition, *, target: str) -> list[str]:
        arguments: list[str] = []
        positional_gap: str | None = None
        for argument in definition.constructor_arguments:
            is_positional = argument.kind is ParameterKind.POSITIONAL_ONLY
            if argument.source.kind is SourceKind.OMITTED:
                if is_positional and positional_gap is None:
                    positional_gap = argument.name
                continue

            expression = self._source_expression(argument.source, consumer=definition.identifier)
            if not is_positional:
                arguments.append(f"{argument.name}={expression}")
                continue
            if positional_gap is not None:
                msg = (
                    f"Positional-only parameter '{argument.name}' of '{definition.identifier}' "
                    f"follows '{positional_gap}', whose default is not a Python literal."
                )
                raise ZenwireEmissionError(msg)
            arguments.append(expression)

        if not arguments:
            return [f"entry = {target}()"]
        return [
            f"entry = {target}(",
            *(f"{_INDENT}{argument}," for argument in arguments),
            ")",
        ]

    def _source_expression(self, source: ArgumentSource, *, consumer: str) -> str:
        match source.kind:
            case SourceKind.CLASS:
                return self._dependency_expression(source.value, consumer=consumer)
            case SourceKind.VALUE:
                return _literal(source.value)
            case SourceKind.REFERENCE:
                return f"self.get({_quote(source.value)})"
            case SourceKind.OMITTED:
                msg = f"An omitted argument of '{consumer}' cannot be rendered as an expression."
                raise ZenwireEmissionError(msg)
            case _:
                assert_never(source.kind)

    def _dependency_expression(self, identifier: str, *, consumer: str | None) -> str:
        definition = self._graph.get(identifier)
        if definition is None:
            msg = f"Definition of '{identifier}' required by '{consumer}' is missing from the graph."
            raise ZenwireEmissionError(msg)
        return self._definition_expression(definition, consumer=consumer)

    def _definition_expression(self, definition: Definition, *, consumer: str | None) -> str:
        match definition:
            case SelfDefinition():
                return "self"
            case ReferenceDefinition() if definition.is_self_reference:
                return "self"
            case ContextDependentDefinition():
                branch = definition.branch_for(consumer)
                if branch is None:
                    msg = (
                        f"Context-dependent definition '{definition.identifier}' has no binding "
                        f"for '{consumer}' and no default."
                    )
                    raise ZenwireEmissionError(msg)
                return self._definition_expression(branch, consumer=consumer)
            case ReferenceDefinition() if (
                not definition.is_file_based
                or self._graph.get(definition.identifier) is not definition
            ):
                # Aliases and context branches are bound directly to their target.
                return self._dependency_expression(
                    definition.referenced_identifier,
                    consumer=consumer,
                )
            case ClassDefinition() | ReferenceDefinition():
                if definition.is_file_based:
                    filename = definition_filename(definition.identifier)
                    return f"self._require({_quote(filename)})"
                method_name = factory_name(definition.identifier)
                if not definition.is_cached():
                    return f"self.{method_name}()"
                key = _quote(definition.identifier)
                return f"self._singletons[{key}] if {key} in self._singletons else self.{method_name}()"
            case AutoloadedDefinition():
                msg = f"Autoloaded definition of '{definition.identifier}' cannot be injected."
                raise ZenwireEmissionError(msg)
            case _:
                assert_never(definition)

    def _factory_summary(self, definition: Definition) -> str:
        match definition:
            case SelfDefinition():
                return "Return the container itself."
            case ReferenceDefinition() if definition.is_self_reference:
                return f"Return the container itself as {definition.identifier}."
            case ReferenceDefinition():
                return f"Return {definition.identifier} through {definition.referenced_identifier}."
            case ClassDefinition():
                policy = "cached" if definition.is_cached() else "fresh"
                return f"Build {definition.identifier} ({definition.scope.value}, {policy})."
            case ContextDependentDefinition():
                return f"Return {definition.identifier} for lookups outside a consumer context."
            case AutoloadedDefinition():
                return f"Activate the modules of {definition.identifier} and build it."
            case _:
                assert_never(definition)

    def _uses_context_lookup_error(self) -> bool:
        return any(
            isinstance(factory.definition, ContextDependentDefinition)
            and factory.definition.default is None
            for factory in self._plan.factories
        )

    def _entry_points_block(self) -> str:
        if not self._plan.entry_points:
            return "{}"
        items = [
            f"{_INDENT}{_quote(identifier)}: {_quote(method_name)},"
            for identifier, method_name in self._plan.entry_points
        ]
        return self._join_lines(["{", *self._indent_lines([*items, "}"], 1)])

    def _module_docstring_lines(self) -> list[str]:
        plan = self._plan
        example_identifier = plan.entry_points[0][0] if plan.entry_points else "app.Service"
        return [
            "Generated dependency injection container.",
            "",
            f"Generated by: {_GENERATOR_SOURCE}",
            f"zenwire version used for generation: {_resolve_zenwire_version()}",
            "",
            "Generation configuration:",
            f"- container class: {plan.container_fqcn}",
            f"- entry point count: {len(plan.entry_points)}",
            f"- autoloaded entry point count: {len(plan.proxies)}",
            f"- definition count: {plan.definition_count}",
            f"- cached definition count: {plan.cached_definition_count}",
            f"- file-based definition count: {plan.file_based_definition_count}",
            f"- definition directory: {plan.definition_directory}",
            "",
            "Examples:",
            f">>> container = {plan.class_name}()",
            f'>>> entry = container.get("{example_identifier}")',
        ]

    def _docstring_block(self, *, lines: list[str], depth: int) -> str:
        return self._join_lines(self._indent_lines(self._docstring_lines(lines), depth))

    def _docstring_lines(self, lines: list[str]) -> list[str]:
        return ['"""', *[self._escape_docstring_line(line) for line in lines], '"""']

    def _escape_docstring_line(self, line: str) -> str:
        return line.replace("\\", "\\\\").replace('"""', r"\"\"\"")

    def _indent_lines(self, lines: list[str], depth: int) -> list[str]:
        prefix = _INDENT * depth
        return [f"{prefix}{line}" if line else "" for line in lines]

    def _join_lines(self, lines: list[str]) -> str:
        return "\n".join(lines)


def _resolve_zenwire_version() -> str:
    try:
        return version("zenwire")
    except PackageNotFoundError:
        return "unknown"


def _quote(value: str) -> str:
    return json.dumps(value)


def _literal(value: Any) -> str:
    """Render a Python literal with a stable element order for sets."""
    value_type = type(value)
    if value_type is set or value_type is frozenset:
        items = sorted(_literal(item) for item in value)
        if not items:
            return f"{value_type.__name__}()"
        body = "{" + ", ".join(items) + "}"
        return body if value_type is set else f"frozenset({body})"
    if value_type is tuple:
        items = [_literal(item) for item in value]
        if len(items) == 1:
            return f"({items[0]},)"
        return "(" + ", ".join(items) + ")"
    if value_type is list:
        return "[" + ", ".join(_literal(item) for item in value) + "]"
    if value_type is dict:
        return "{" + ", ".join(f"{_literal(key)}: {_literal(item)}" for key, item in value.items()) + "}"
    return repr(value)