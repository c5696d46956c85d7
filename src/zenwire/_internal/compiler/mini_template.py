from __future__ import annotations

import re
from dataclasses import dataclass

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
# A block tag alone on its line consumes the whole line, so conditional
# fragments do not leave blank lines behind.
_TAG_PATTERN = re.compile(
    r"^[ \t]*\{%(?P<line_block>(?:(?!%\}).)*)%\}[ \t]*(?:\n|\Z)"
    r"|\{\{(?P<variable>(?:(?!\}\}).)*)\}\}"
    r"|\{%(?P<block>(?:(?!%\}).)*)%\}",
    re.MULTILINE,
)


@dataclass(frozen=True, slots=True)
class _TextNode:
    value: str


@dataclass(frozen=True, slots=True)
class _VariableNode:
    identifier: str


@dataclass(frozen=True, slots=True)
class _IfNode:
    identifier: str
    truthy_nodes: tuple[_Node, ...]
    falsy_nodes: tuple[_Node, ...]


_Node = _TextNode | _VariableNode | _IfNode


@dataclass(frozen=True, slots=True)
class _Tag:
    kind: str
    expression: str


class Environment:
    """Compile code fragments written in a tiny Jinja-like block syntax.

    Supported syntax: ``{{ name }}`` substitutions and ``{% if name %}`` blocks
    with an optional ``{% else %}``, closed by ``{% endif %}``.
    """

    def from_string(self, text: str) -> Template:
        """Compile a fragment into a renderable template.

        Args:
            text: Fragment source text.

        Raises:
            ValueError: If the fragment uses unsupported or unbalanced tags.

        """
        parser = _Parser(parts=_tokenize(text))
        return Template(nodes=parser.parse())


class Template:
    """Compiled fragment."""

    def __init__(self, *, nodes: tuple[_Node, ...]) -> None:
        self._nodes = nodes

    def render(self, **context: object) -> str:
        """Render the fragment with keyword-only context variables.

        Raises:
            ValueError: If the fragment refers to a variable missing from the context.

        """
        return _render_nodes(nodes=self._nodes, context=context)


class _Parser:
    def __init__(self, *, parts: tuple[str | _Tag, ...]) -> None:
        self._parts = parts
        self._position = 0

    def parse(self) -> tuple[_Node, ...]:
        nodes, stop_tag = self._parse_until(frozenset())
        if stop_tag is not None:
            msg = f"Unexpected block tag '{stop_tag}'."
            raise ValueError(msg)
        return nodes

    def _parse_until(self, stop_tags: frozenset[str]) -> tuple[tuple[_Node, ...], str | None]:
        nodes: list[_Node] = []
        while self._position < len(self._parts):
            part = self._parts[self._position]
            self._position += 1

            if isinstance(part, str):
                nodes.append(_TextNode(value=part))
            elif part.kind == "variable":
                nodes.append(_VariableNode(identifier=_parse_identifier(part.expression)))
            elif part.expression in stop_tags:
                return tuple(nodes), part.expression
            elif part.expression.startswith("if "):
                nodes.append(self._parse_if(part.expression[3:].strip()))
            else:
                msg = f"Unexpected block tag '{part.expression}'."
                raise ValueError(msg)
        return tuple(nodes), None

    def _parse_if(self, expression: str) -> _IfNode:
        identifier = _parse_condition(expression)
        truthy_nodes, stop_tag = self._parse_until(frozenset({"else", "endif"}))
        falsy_nodes: tuple[_Node, ...] = ()
        if stop_tag == "else":
            falsy_nodes, stop_tag = self._parse_until(frozenset({"endif"}))
        if stop_tag != "endif":
            msg = "Unclosed if block: missing endif."
            raise ValueError(msg)
        return _IfNode(identifier=identifier, truthy_nodes=truthy_nodes, falsy_nodes=falsy_nodes)


def _tokenize(text: str) -> tuple[str | _Tag, ...]:
    parts: list[str | _Tag] = []
    cursor = 0
    for match in _TAG_PATTERN.finditer(text):
        if match.start() > cursor:
            parts.append(_plain_text(text[cursor : match.start()]))
        cursor = match.end()

        variable = match.group("variable")
        if variable is not None:
            parts.append(_Tag(kind="variable", expression=_non_empty(variable, "Variable")))
            continue
        block = match.group("line_block")
        if block is None:
            block = match.group("block")
        parts.append(_Tag(kind="block", expression=_non_empty(block, "Block")))

    if cursor < len(text):
        parts.append(_plain_text(text[cursor:]))
    return tuple(parts)


def _plain_text(text: str) -> str:
    if "{{" in text or "{%" in text:
        msg = "Unclosed template tag."
        raise ValueError(msg)
    return text


def _non_empty(expression: str, tag_kind: str) -> str:
    stripped = expression.strip()
    if not stripped:
        msg = f"{tag_kind} tag cannot be empty."
        raise ValueError(msg)
    return stripped


def _parse_identifier(expression: str) -> str:
    if _IDENTIFIER_PATTERN.fullmatch(expression):
        return expression
    msg = f"Unsupported variable expression '{expression}'."
    raise ValueError(msg)


def _parse_condition(expression: str) -> str:
    if _IDENTIFIER_PATTERN.fullmatch(expression):
        return expression
    msg = f"Unsupported if condition '{expression}'."
    raise ValueError(msg)


def _render_nodes(*, nodes: tuple[_Node, ...], context: dict[str, object]) -> str:
    rendered: list[str] = []
    for node in nodes:
        if isinstance(node, _TextNode):
            rendered.append(node.value)
        elif isinstance(node, _VariableNode):
            rendered.append(str(_lookup(context, node.identifier)))
        else:
            value = _lookup(context, node.identifier)
            branch = node.truthy_nodes if value else node.falsy_nodes
            rendered.append(_render_nodes(nodes=branch, context=context))
    return "".join(rendered)


def _lookup(context: dict[str, object], identifier: str) -> object:
    if identifier not in context:
        msg = f"Missing template variable '{identifier}'."
        raise ValueError(msg)
    return context[identifier]
