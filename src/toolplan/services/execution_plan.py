"""Execution plan generation, layering and versioning.

A request flows through Closure -> Order -> ParameterGap-Analysis ->
Layering -> Optimization -> Versioned-Publish. Every stage before the
publish is a pure function of one :class:`DependencySnapshot` and the
collaborator answers; the publish appends exactly one version to the
request signature's history.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from toolplan.collaborators.affinity import StoreAffinityService
from toolplan.collaborators.interfaces import (
    ApiAffinityService,
    ParameterRequirementService,
    ToolStore,
)
from toolplan.collaborators.parameters import StoreParameterRequirementService
from toolplan.config.settings import PlannerSettings
from toolplan.errors import PlannerError, UnknownToolError
from toolplan.graph import DirectedGraph
from toolplan.schema.plan import ExecutionPlan, request_signature
from toolplan.schema.tools import ParameterMapping
from toolplan.services.dependency_graph import (
    DependencySnapshot,
    ToolDependencyGraphService,
)
from toolplan.services.optimization import AffinityPolicy, policy_for
from toolplan.services.version_store import PlanVersionStore
from toolplan.utilities.logger_manager import LoggerConfig, LoggerManager, MetricType


class ExecutionPlanService:
    """Produces ordered, layered and versioned execution plans."""

    def __init__(
        self,
        graph_service: ToolDependencyGraphService,
        parameter_service: ParameterRequirementService,
        affinity_service: ApiAffinityService,
        version_store: PlanVersionStore | None = None,
        affinity_policy: AffinityPolicy | None = None,
        settings: PlannerSettings | None = None,
        logger_manager: LoggerManager | None = None,
    ) -> None:
        self.graph_service = graph_service
        self.parameter_service = parameter_service
        self.affinity_service = affinity_service
        self.settings = settings or graph_service.settings
        self.version_store = version_store or PlanVersionStore(
            self.settings.max_plan_versions
        )
        self.affinity_policy = affinity_policy or policy_for(
            self.settings.affinity_policy
        )
        self.logger_manager = logger_manager or graph_service.logger_manager
        self.logger = self.logger_manager.get_logger(component="execution_plan")

    @classmethod
    def from_store(
        cls,
        store: ToolStore,
        settings: PlannerSettings | None = None,
        logger_manager: LoggerManager | None = None,
    ) -> ExecutionPlanService:
        """Wire the service with the store-backed reference collaborators."""
        settings = settings or PlannerSettings()
        logger_manager = logger_manager or LoggerManager(
            LoggerConfig(
                log_level=settings.log_level,
                structured_logging=settings.structured_logging,
            )
        )
        return cls(
            graph_service=ToolDependencyGraphService(store, settings, logger_manager),
            parameter_service=StoreParameterRequirementService(store),
            affinity_service=StoreAffinityService(store),
            settings=settings,
            logger_manager=logger_manager,
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_execution_plan(
        self,
        requested_ids: Iterable[str],
        provided_parameters: Mapping[str, Any] | None = None,
    ) -> ExecutionPlan:
        """Resolve ``requested_ids`` into a new plan version.

        Raises:
            UnknownToolError: A requested id is not an active tool.
            CycleDetectedError: The REQUIRED dependencies of the closure
                contain a cycle; the error carries it.
        """
        requested = tuple(requested_ids)
        if not requested:
            raise ValueError("At least one tool id must be requested")
        provided = dict(provided_parameters or {})
        signature = request_signature(requested)

        with self.logger.context(signature=list(signature)) as logger:
            logger.debug(
                "Generating execution plan with parameters %s", sorted(provided)
            )
            try:
                with self.logger_manager.timed("execution_plan.generation.duration"):
                    draft = self._draft(requested, provided)
            except PlannerError as exc:
                logger.error(f"Execution plan generation failed: {exc}")
                self.logger_manager.log_metric(
                    "execution_plan.generation.errors",
                    1,
                    tags={"code": exc.code.value},
                )
                raise
            except Exception:
                logger.exception("Execution plan generation failed")
                self.logger_manager.log_metric(
                    "execution_plan.generation.errors", 1, tags={"code": "collaborator"}
                )
                raise
            plan = self.version_store.publish(draft)
            self.logger_manager.log_metric("execution_plan.generated", 1)
            self.logger_manager.log_metric(
                "execution_plan.parallel_groups",
                plan.parallel_group_count,
                MetricType.GAUGE,
            )
            logger.info(
                "Published execution plan v%d: %d tools in %d parallel groups",
                plan.version,
                len(plan.tools_in_order),
                plan.parallel_group_count,
            )
        return plan

    async def generate_execution_plan_async(
        self,
        requested_ids: Iterable[str],
        provided_parameters: Mapping[str, Any] | None = None,
    ) -> ExecutionPlan:
        """Run :meth:`generate_execution_plan` in a worker thread."""
        return await asyncio.to_thread(
            self.generate_execution_plan, tuple(requested_ids), provided_parameters
        )

    def _draft(
        self, requested: tuple[str, ...], provided: Mapping[str, Any]
    ) -> ExecutionPlan:
        snapshot = self.graph_service.snapshot(include_inactive=False)
        closure = self.graph_service.get_dependency_closure(requested, snapshot)
        with self.logger_manager.timed("dependency_graph.topological_sort.duration"):
            graph = self.graph_service.ordering_graph(closure, snapshot)
            order = graph.topological_sort()

        missing = self.parameter_service.identify_missing_parameters(order, provided)
        has_missing = self.parameter_service.has_required_parameters_missing(missing)

        groups = _layer(order, graph)
        optimized = self.affinity_policy.apply(
            groups, self.affinity_service.get_affinity_key
        )

        return ExecutionPlan(
            requested_tool_ids=requested,
            signature=request_signature(requested),
            tools_in_order=tuple(order),
            missing_parameters={
                tool_id: frozenset(requirements)
                for tool_id, requirements in missing.items()
            },
            parameter_mappings=self._parameter_mappings(order, snapshot),
            has_missing_required_parameters=has_missing,
            parallel_execution_groups=optimized.groups,
            affinity_annotations=optimized.annotations,
            optimized=True,
        )

    # ------------------------------------------------------------------
    # Layering
    # ------------------------------------------------------------------

    def identify_parallel_execution_groups(
        self,
        order: Sequence[str],
        snapshot: DependencySnapshot | None = None,
    ) -> list[frozenset[str]]:
        """Group ``order`` into levels of concurrently runnable tools.

        A tool's level is one more than the highest level among its
        prerequisites present in ``order`` (0 when it has none), so each
        tool lands in the earliest group its prerequisites allow. The
        prerequisites are the edges of the graph service's ordering graph,
        the same edges :meth:`ToolDependencyGraphService.topological_sort`
        honours.
        """
        snapshot = snapshot or self.graph_service.snapshot(include_inactive=False)
        unknown = snapshot.unknown(order)
        if unknown:
            raise UnknownToolError(unknown)
        if len(set(order)) != len(order):
            raise ValueError("Execution order contains duplicate tools")
        return _layer(order, self.graph_service.ordering_graph(order, snapshot))

    def _parameter_mappings(
        self, order: Sequence[str], snapshot: DependencySnapshot
    ) -> dict[str, tuple[ParameterMapping, ...]]:
        included = set(order)
        mappings: dict[str, tuple[ParameterMapping, ...]] = {}
        for tool_id in order:
            inherited = tuple(
                mapping
                if mapping.source_tool_id
                else mapping.model_copy(
                    update={"source_tool_id": record.prerequisite_id}
                )
                for record in sorted(
                    snapshot.records_for(tool_id), key=lambda r: r.prerequisite_id
                )
                if record.prerequisite_id in included
                for mapping in record.parameter_mappings
            )
            if inherited:
                mappings[tool_id] = inherited
        return mappings

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def get_execution_plan_version(
        self, requested_ids: Iterable[str], version: int
    ) -> ExecutionPlan:
        """Return ``version`` of the plan for this exact requested tool set."""
        return self.version_store.get(request_signature(requested_ids), version)

    def get_all_execution_plan_versions(
        self, requested_ids: Iterable[str]
    ) -> dict[int, ExecutionPlan]:
        return self.version_store.versions(request_signature(requested_ids))

    def get_latest_execution_plan(
        self, requested_ids: Iterable[str]
    ) -> ExecutionPlan | None:
        return self.version_store.latest(request_signature(requested_ids))


def _layer(order: Sequence[str], graph: DirectedGraph[str]) -> list[frozenset[str]]:
    levels: dict[str, int] = {}
    for tool_id in order:
        prerequisites = graph.predecessors(tool_id)
        late = sorted(p for p in prerequisites if p not in levels)
        if late:
            raise ValueError(
                f"Execution order places {', '.join(late)} after dependent {tool_id}"
            )
        levels[tool_id] = (
            1 + max(levels[p] for p in prerequisites) if prerequisites else 0
        )

    depth = max(levels.values(), default=-1) + 1
    groups: list[set[str]] = [set() for _ in range(depth)]
    for tool_id, level in levels.items():
        groups[level].add(tool_id)
    return [frozenset(group) for group in groups]


__all__ = ["ExecutionPlanService"]
