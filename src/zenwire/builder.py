from __future__ import annotations

import logging
from pathlib import Path

from zenwire._internal.compiler.compiler import CompilationResult, Compiler
from zenwire._internal.definitions import DefinitionGraph
from zenwire._internal.identifiers import split_identifier
from zenwire._internal.resolver import DependencyResolver
from zenwire.config import CompilerConfig
from zenwire.metadata import MetadataProvider, ReflectionMetadataProvider

logger = logging.getLogger(__name__)


class ContainerBuilder:
    """Resolve, compile and write a container in one call.

    Examples:
        .. code-block:: python

            config = CompilerConfig(
                container_fqcn="app.di.Container",
                container_configs=[ContainerConfig(entry_points=[UserController])],
            )
            ContainerBuilder(config).build("src/app/di")

    Args:
        config: Compiler configuration.
        metadata_provider: Source of constructor and field metadata. Defaults to
            ``ReflectionMetadataProvider``, which imports the configured classes.

    """

    def __init__(
        self,
        config: CompilerConfig,
        metadata_provider: MetadataProvider | None = None,
    ) -> None:
        self._config = config
        self._metadata_provider = metadata_provider or ReflectionMetadataProvider()
        self._compiler = Compiler()

    def resolve(self) -> DefinitionGraph:
        return DependencyResolver(self._config, self._metadata_provider).resolve_all()

    def compile(self) -> CompilationResult:
        return self._compiler.compile(self._config, self.resolve())

    def build(self, output_directory: str | Path) -> list[Path]:
        """Write the container module and its definition files.

        The main artifact is written as ``<last module segment>.py`` into
        ``output_directory``; auxiliary files go to the configured definition
        directory below it. Python files left in the definition directory by an
        earlier build are removed.

        Args:
            output_directory: Directory of the container module's package.

        Returns:
            Paths of every written file, main artifact first.

        """
        result = self.compile()
        directory = Path(output_directory)
        module = split_identifier(self._config.container_fqcn)[0] or "compiled_container"
        main_path = directory / f"{module.rpartition('.')[2]}.py"

        written = [self._write(main_path, result.main)]
        definition_directory = (
            directory / self._config.file_based_definitions.relative_definition_directory
        )
        self._remove_stale_definitions(definition_directory, keep=set(result.auxiliary))
        for filename, source in sorted(result.auxiliary.items()):
            written.append(self._write(definition_directory / filename, source))

        logger.info(
            "Wrote container %s: main=%s auxiliary_count=%d",
            self._config.container_fqcn,
            main_path,
            len(result.auxiliary),
        )
        return written

    def _remove_stale_definitions(self, definition_directory: Path, *, keep: set[str]) -> None:
        """Delete definition files of an earlier build that this build does not produce."""
        if not definition_directory.is_dir():
            return
        for path in sorted(definition_directory.glob("*.py")):
            if path.name not in keep:
                path.unlink()
                logger.debug("Removed stale definition file %s", path)

    def _write(self, path: Path, source: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        logger.debug("Wrote %s (%d bytes)", path, len(source))
        return path
