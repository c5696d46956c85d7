from __future__ import annotations

import logging

from zenwire._internal.compiler.planner import ContainerPlan, ContainerPlanner
from zenwire._internal.compiler.renderer import CompilationResult, ContainerRenderer
from zenwire._internal.definitions import DefinitionGraph
from zenwire.config import CompilerConfig

logger = logging.getLogger(__name__)


class Compiler:
    """Emit the source code of a compiled container from a resolved definition graph.

    Emission is a pure function of the configuration and the graph: compiling
    the same graph twice produces byte-identical artifacts.
    """

    def compile(self, config: CompilerConfig, graph: DefinitionGraph) -> CompilationResult:
        """Render the container module and its auxiliary definition files.

        Args:
            config: Configuration the graph was resolved with.
            graph: Graph produced by ``DependencyResolver.resolve_all``.

        Raises:
            ZenwireEmissionError: If the graph refers to identifiers it does not define.

        """
        plan = ContainerPlanner(config=config, graph=graph).build()
        self._log_plan_strategy(plan=plan)
        result = ContainerRenderer(plan=plan, graph=graph).render()
        logger.debug(
            "Rendered container %s: main_size=%d auxiliary_files=%s",
            plan.container_fqcn,
            len(result.main),
            sorted(result.auxiliary),
        )
        return result

    def _log_plan_strategy(self, *, plan: ContainerPlan) -> None:
        logger.info(
            (
                "Container codegen strategy: container=%s entry_point_count=%d "
                "definition_count=%d cached_definition_count=%d "
                "file_based_definition_count=%d autoloaded_entry_point_count=%d"
            ),
            plan.container_fqcn,
            len(plan.entry_points),
            plan.definition_count,
            plan.cached_definition_count,
            plan.file_based_definition_count,
            len(plan.proxies),
        )


__all__ = ["CompilationResult", "Compiler"]
