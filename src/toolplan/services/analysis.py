"""Structural analysis and validation of the tool dependency registry."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from toolplan.collaborators.interfaces import ToolStore
from toolplan.constants import MAX_CRITICAL_DEPENDENCIES
from toolplan.enums import DependencyType, Direction
from toolplan.errors import (
    CycleDetectedError,
    InvalidParameterMappingError,
    UnknownToolError,
)
from toolplan.graph import DirectedGraph
from toolplan.schema.analysis import (
    CommonDependencies,
    CriticalDependency,
    DependencyAnalysis,
    RemovalImpact,
    ToolSummary,
)
from toolplan.schema.tools import ParameterMapping, ToolNode
from toolplan.services.dependency_graph import (
    DependencySnapshot,
    ToolDependencyGraphService,
)


class DependencyAnalysisService:
    """Answers structural questions about one or more tools.

    Analysis looks at every dependency edge, REQUIRED and OPTIONAL, between
    the tools the graph service includes.
    """

    def __init__(self, graph_service: ToolDependencyGraphService) -> None:
        self.graph_service = graph_service
        self.logger = graph_service.logger_manager.get_logger(component="analysis")

    def analyze_dependencies(self, tool_id: str) -> DependencyAnalysis:
        snapshot = self._snapshot([tool_id])
        graph = snapshot.graph
        self.logger.debug("Analyzing dependencies for tool %s", tool_id)

        direct_dependencies = graph.predecessors(tool_id)
        all_dependencies = graph.transitive_closure(tool_id, Direction.REVERSE)
        direct_dependents = graph.successors(tool_id)
        all_dependents = graph.transitive_closure(tool_id, Direction.FORWARD)

        records = snapshot.records_for(tool_id)
        required = sum(
            1 for r in records if r.dependency_type is DependencyType.REQUIRED
        )

        dependent_counts = {
            dependency: len(graph.transitive_closure(dependency))
            for dependency in all_dependencies - {tool_id}
        }
        critical = sorted(dependent_counts, key=lambda d: (-dependent_counts[d], d))

        return DependencyAnalysis(
            tool=_summary(snapshot, tool_id),
            direct_dependencies=_summaries(snapshot, direct_dependencies - {tool_id}),
            indirect_dependencies=_summaries(
                snapshot, all_dependencies - direct_dependencies - {tool_id}
            ),
            direct_dependents=_summaries(snapshot, direct_dependents - {tool_id}),
            indirect_dependents=_summaries(
                snapshot, all_dependents - direct_dependents - {tool_id}
            ),
            required_dependency_count=required,
            optional_dependency_count=len(records) - required,
            cycles=tuple(
                tuple(cycle) for cycle in graph.detect_cycles() if tool_id in cycle
            ),
            critical_dependencies=tuple(
                CriticalDependency(
                    tool=_summary(snapshot, dependency),
                    dependent_count=dependent_counts[dependency],
                )
                for dependency in critical[:MAX_CRITICAL_DEPENDENCIES]
            ),
        )

    def analyze_removal_impact(self, tool_id: str) -> RemovalImpact:
        """Direct dependents are high impact, transitive ones medium impact."""
        snapshot = self._snapshot([tool_id])
        direct = snapshot.graph.successors(tool_id) - {tool_id}
        everything = snapshot.graph.transitive_closure(tool_id) - {tool_id}
        impact = RemovalImpact(
            tool=_summary(snapshot, tool_id),
            high_impact=_summaries(snapshot, direct),
            medium_impact=_summaries(snapshot, everything - direct),
        )
        self.logger.info(
            "Removing %s would affect %d tools", tool_id, impact.total_impacted_tools
        )
        return impact

    def find_common_dependencies(self, tool_ids: Sequence[str]) -> CommonDependencies:
        requested = list(dict.fromkeys(tool_ids))
        if not requested:
            return CommonDependencies(tool_ids=())
        snapshot = self._snapshot(requested)
        prerequisites = {
            tool_id: snapshot.graph.transitive_closure(tool_id, Direction.REVERSE)
            - {tool_id}
            for tool_id in requested
        }
        common = frozenset.intersection(*prerequisites.values())
        return CommonDependencies(
            tool_ids=tuple(requested),
            common=tuple(sorted(common)),
            unique={
                tool_id: tuple(sorted(found - common))
                for tool_id, found in prerequisites.items()
            },
        )

    def _snapshot(self, tool_ids: Iterable[str]) -> DependencySnapshot:
        snapshot = self.graph_service.snapshot()
        unknown = snapshot.unknown(tool_ids)
        if unknown:
            raise UnknownToolError(unknown)
        return snapshot


def _summary(snapshot: DependencySnapshot, tool_id: str) -> ToolSummary:
    tool = snapshot.tools[tool_id]
    return ToolSummary(id=tool.id, name=tool.display_name, active=tool.active)


def _summaries(
    snapshot: DependencySnapshot, tool_ids: Iterable[str]
) -> tuple[ToolSummary, ...]:
    return tuple(_summary(snapshot, tool_id) for tool_id in sorted(tool_ids))


class DependencyValidator:
    """Checks proposed registry changes before they are stored."""

    def __init__(self, store: ToolStore) -> None:
        self.store = store

    def validate_no_cycles(self, tool_id: str, dependency_ids: Iterable[str]) -> None:
        """Reject replacing ``tool_id``'s prerequisites with ``dependency_ids``.

        Raises:
            UnknownToolError: A proposed prerequisite is not registered.
            CycleDetectedError: The resulting registry would contain a cycle.
        """
        proposed = list(dict.fromkeys(dependency_ids))
        if not proposed:
            return
        known = {tool.id for tool in self.store.list_tools(include_inactive=True)}
        missing = [dependency for dependency in proposed if dependency not in known]
        if missing:
            raise UnknownToolError(missing)

        graph: DirectedGraph[str] = DirectedGraph()
        for node in known | {tool_id}:
            graph.add_node(node)
        for record in self.store.list_dependency_edges():
            if record.dependent_id == tool_id:
                continue
            if record.prerequisite_id in known and record.dependent_id in known:
                graph.add_edge(record.prerequisite_id, record.dependent_id)
        for dependency in proposed:
            graph.add_edge(dependency, tool_id)

        cycles = [cycle for cycle in graph.detect_cycles() if tool_id in cycle]
        if cycles:
            raise CycleDetectedError(
                cycles[0],
                f"Adding dependencies {', '.join(proposed)} to {tool_id} "
                "would create a cycle",
            )

    def validate_parameter_mappings(
        self,
        tool_id: str,
        prerequisite_id: str,
        mappings: Iterable[ParameterMapping],
    ) -> None:
        """Check that every mapping joins two declared parameters."""
        mappings = list(mappings)
        if not mappings:
            return
        tool = self._tool(tool_id)
        prerequisite = self._tool(prerequisite_id)
        for mapping in mappings:
            if mapping.source_parameter not in prerequisite.parameter_names:
                raise InvalidParameterMappingError(
                    mapping.source_parameter,
                    f"not declared by prerequisite {prerequisite_id}",
                )
            if mapping.target_parameter not in tool.parameter_names:
                raise InvalidParameterMappingError(
                    mapping.target_parameter, f"not declared by tool {tool_id}"
                )

    def _tool(self, tool_id: str) -> ToolNode:
        tool = self.store.get_tool(tool_id)
        if tool is None:
            raise UnknownToolError([tool_id])
        return tool


__all__ = ["DependencyAnalysisService", "DependencyValidator"]
