"""Builds tool dependency graphs from the tool store.

Graphs are rebuilt from the store on every call so they always reflect the
latest records. Callers that need several queries to agree on one view of
the registry take a :class:`DependencySnapshot` and pass it along.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from toolplan.collaborators.interfaces import ToolStore
from toolplan.config.settings import PlannerSettings
from toolplan.enums import DependencyType, Direction
from toolplan.errors import CycleDetectedError, UnknownToolError
from toolplan.graph import DirectedGraph
from toolplan.schema.tools import ToolDependencyRecord, ToolNode
from toolplan.utilities.logger_manager import LoggerManager, MetricType


@dataclass(frozen=True)
class DependencySnapshot:
    """One consistent read of the tool store and the graphs built from it.

    ``graph`` carries every dependency edge between included tools;
    ``required_graph`` keeps only REQUIRED edges, the ones ordering
    correctness is guaranteed for.
    """

    tools: Mapping[str, ToolNode]
    records: tuple[ToolDependencyRecord, ...]
    graph: DirectedGraph[str]
    required_graph: DirectedGraph[str]

    def dependency_type(
        self, prerequisite_id: str, dependent_id: str
    ) -> DependencyType | None:
        for record in self.records:
            if record.edge == (prerequisite_id, dependent_id):
                return record.dependency_type
        return None

    def records_for(self, dependent_id: str) -> list[ToolDependencyRecord]:
        """Dependency records in which ``dependent_id`` is the dependent."""
        return [record for record in self.records if record.dependent_id == dependent_id]

    def unknown(self, tool_ids: Iterable[str]) -> list[str]:
        return sorted(set(tool_ids) - self.graph.nodes)


class ToolDependencyGraphService:
    """Translates tool and dependency records into ``DirectedGraph[str]``."""

    def __init__(
        self,
        store: ToolStore,
        settings: PlannerSettings | None = None,
        logger_manager: LoggerManager | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or PlannerSettings()
        self.logger_manager = logger_manager or LoggerManager()
        self.logger = self.logger_manager.get_logger(component="dependency_graph")

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def snapshot(self, include_inactive: bool | None = None) -> DependencySnapshot:
        """Read the store once and build both graph views."""
        if include_inactive is None:
            include_inactive = self.settings.include_inactive
        with self.logger_manager.timed("dependency_graph.build.duration"):
            tools = {
                tool.id: tool
                for tool in self.store.list_tools(include_inactive=include_inactive)
            }
            records = tuple(self.store.list_dependency_edges())
            graph = self._assemble(tools, records, required_only=False)
            required_graph = self._assemble(tools, records, required_only=True)
        self.logger_manager.log_metric(
            "dependency_graph.nodes", len(graph), MetricType.GAUGE
        )
        self.logger.debug(
            "Built dependency graph with %d nodes and %d edges",
            len(graph),
            len(graph.edges()),
            extra={"context": {"include_inactive": include_inactive}},
        )
        return DependencySnapshot(
            tools=tools,
            records=records,
            graph=graph,
            required_graph=required_graph,
        )

    def build_dependency_graph(
        self, include_inactive: bool | None = None, required_only: bool = False
    ) -> DirectedGraph[str]:
        """Return a fresh graph with an edge ``prerequisite -> dependent`` per record."""
        snapshot = self.snapshot(include_inactive)
        return snapshot.required_graph if required_only else snapshot.graph

    def dependency_types(self) -> dict[tuple[str, str], DependencyType]:
        """Map each stored edge to its dependency type."""
        return {
            record.edge: record.dependency_type
            for record in self.store.list_dependency_edges()
        }

    def _assemble(
        self,
        tools: Mapping[str, ToolNode],
        records: Iterable[ToolDependencyRecord],
        required_only: bool,
    ) -> DirectedGraph[str]:
        graph: DirectedGraph[str] = DirectedGraph()
        for tool_id in tools:
            graph.add_node(tool_id)
        for record in records:
            if required_only and not record.is_required:
                continue
            if record.prerequisite_id not in tools or record.dependent_id not in tools:
                self.logger.debug(
                    "Skipping dependency %s -> %s: endpoint not in graph",
                    record.prerequisite_id,
                    record.dependent_id,
                )
                continue
            graph.add_edge(record.prerequisite_id, record.dependent_id)
        return graph

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_dependency_closure(
        self,
        requested_ids: Iterable[str],
        snapshot: DependencySnapshot | None = None,
    ) -> frozenset[str]:
        """Requested tools plus every transitive REQUIRED prerequisite."""
        requested = list(requested_ids)
        snapshot = snapshot or self.snapshot(include_inactive=False)
        unknown = snapshot.unknown(requested)
        if unknown:
            raise UnknownToolError(unknown)
        with self.logger_manager.timed("dependency_graph.closure.duration"):
            closure = snapshot.required_graph.reachable_from(
                requested, Direction.REVERSE
            )
        self.logger.debug(
            "Dependency closure of %s has %d tools",
            sorted(set(requested)),
            len(closure),
        )
        return closure

    def topological_sort(
        self,
        tool_ids: Iterable[str],
        snapshot: DependencySnapshot | None = None,
    ) -> list[str]:
        """Order ``tool_ids`` so every prerequisite precedes its dependents.

        REQUIRED edges are always honoured and a cycle among them raises
        :class:`CycleDetectedError`. OPTIONAL edges are honoured as well when
        ``respect_optional_order`` is set and they do not close a cycle;
        otherwise they are ignored.
        """
        with self.logger_manager.timed("dependency_graph.topological_sort.duration"):
            return self.ordering_graph(tool_ids, snapshot).topological_sort()

    def ordering_graph(
        self,
        tool_ids: Iterable[str],
        snapshot: DependencySnapshot | None = None,
    ) -> DirectedGraph[str]:
        """Subgraph over ``tool_ids`` whose edges plan order and layering honour.

        This is the REQUIRED subgraph, widened with OPTIONAL edges when
        ``respect_optional_order`` is set and the widened graph is acyclic.

        Raises:
            UnknownToolError: A tool id is not part of the snapshot.
            CycleDetectedError: The REQUIRED edges among ``tool_ids`` form a cycle.
        """
        selected = set(tool_ids)
        snapshot = snapshot or self.snapshot(include_inactive=False)
        unknown = snapshot.unknown(selected)
        if unknown:
            raise UnknownToolError(unknown)
        required = snapshot.required_graph.subgraph(selected)
        cycles = required.detect_cycles()
        if cycles:
            raise CycleDetectedError(cycles[0])
        if self.settings.respect_optional_order:
            combined = snapshot.graph.subgraph(selected)
            optional_cycles = combined.detect_cycles()
            if not optional_cycles:
                return combined
            self.logger.warning(
                "Optional dependencies form a cycle %s; ordering by required "
                "dependencies only",
                optional_cycles[0],
            )
        return required


__all__ = ["DependencySnapshot", "ToolDependencyGraphService"]
