from textwrap import dedent

CONTAINER_MODULE_FRAGMENT = dedent(
    """
    {{ module_docstring_block }}

    from __future__ import annotations

    from typing import Any

    from zenwire.compiled_container import AbstractCompiledContainer
    {% if uses_context_lookup_error %}
    from zenwire.exceptions import ZenwireContextDependentLookupError
    {% endif %}


    class {{ class_name }}(AbstractCompiledContainer):
    {{ class_docstring_block }}

        _entry_points = {{ entry_points_block }}
        _definition_directory = {{ definition_directory }}
    {% if init_method_block %}

    {{ init_method_block }}
    {% endif %}
    {% if methods_block %}

    {{ methods_block }}
    {% endif %}
    """,
).strip()

DEFINITION_FILE_FRAGMENT = dedent(
    """
    {{ module_docstring_block }}

    from __future__ import annotations

    from typing import Any


    def build(self: Any) -> Any:
    {{ body_block }}
    """,
).strip()

INIT_METHOD_FRAGMENT = dedent(
    """
    def __init__(self, definition_directory: str | None = None) -> None:
        super().__init__(definition_directory)
    {{ body_block }}
    """,
).strip()

METHOD_FRAGMENT = dedent(
    """
    def {{ method_name }}(self) -> Any:
    {% if docstring_block %}
    {{ docstring_block }}
    {% endif %}
    {{ body_block }}
    """,
).strip()
