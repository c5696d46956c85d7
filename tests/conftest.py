"""Shared pytest fixtures for zenwire tests."""

from __future__ import annotations

import importlib.util
import itertools
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from zenwire import (
    AbstractCompiledContainer,
    CompilationResult,
    Compiler,
    CompilerConfig,
    ContainerConfig,
    DependencyResolver,
    ReflectionMetadataProvider,
)

GENERATED_CONTAINER_FQCN = "generated_container.Container"

LoadContainer = Callable[[CompilationResult], type[AbstractCompiledContainer]]
BuildContainer = Callable[..., type[AbstractCompiledContainer]]


def make_config(**options: Any) -> CompilerConfig:
    """CompilerConfig with one ContainerConfig built from the container-level options."""
    container_options = {
        key: options.pop(key)
        for key in ("entry_points", "definition_hints", "wildcard_hints")
        if key in options
    }
    options.setdefault("container_fqcn", GENERATED_CONTAINER_FQCN)
    return CompilerConfig(container_configs=[ContainerConfig(**container_options)], **options)


@pytest.fixture()
def metadata_provider() -> ReflectionMetadataProvider:
    """Reflection metadata provider over the importable test application."""
    return ReflectionMetadataProvider()


@pytest.fixture()
def load_container(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> LoadContainer:
    """Write compilation artifacts below tmp_path and import the container class."""
    counter = itertools.count()

    def _load(result: CompilationResult) -> type[AbstractCompiledContainer]:
        directory = tmp_path / f"build_{next(counter)}"
        definitions = directory / "definitions"
        definitions.mkdir(parents=True)
        main_path = directory / "generated_container.py"
        main_path.write_text(result.main, encoding="utf-8")
        for filename, source in result.auxiliary.items():
            (definitions / filename).write_text(source, encoding="utf-8")

        module_name = f"zenwire_generated_{directory.name}"
        spec = importlib.util.spec_from_file_location(module_name, main_path)
        assert spec is not None
        assert spec.loader is not None
        module = importlib.util.module_from_spec(spec)
        monkeypatch.setitem(sys.modules, module_name, module)
        spec.loader.exec_module(module)
        return module.Container

    return _load


@pytest.fixture()
def build_container(
    metadata_provider: ReflectionMetadataProvider,
    load_container: LoadContainer,
) -> BuildContainer:
    """Resolve, compile and import a container from make_config options."""

    def _build(**options: Any) -> type[AbstractCompiledContainer]:
        config = make_config(**options)
        graph = DependencyResolver(config, metadata_provider).resolve_all()
        return load_container(Compiler().compile(config, graph))

    return _build
