from __future__ import annotations

import pytest
from tests.utils.tool_fixtures import build_store, tool

from toolplan.config import PlannerSettings
from toolplan.enums import DependencyType
from toolplan.errors import CycleDetectedError, UnknownToolError
from toolplan.services import ToolDependencyGraphService
from toolplan.utilities.logger_manager import LoggerManager

OPTIONAL = DependencyType.OPTIONAL


def service_for(
    store, logger_manager: LoggerManager, **settings
) -> ToolDependencyGraphService:
    return ToolDependencyGraphService(store, PlannerSettings(**settings), logger_manager)


def test_build_dependency_graph_mirrors_records(
    graph_service: ToolDependencyGraphService,
) -> None:
    graph = graph_service.build_dependency_graph()
    assert graph.nodes == {"tool1", "tool2", "tool3", "tool4"}
    assert graph.edges() == [("tool1", "tool2"), ("tool1", "tool4"), ("tool2", "tool3")]


def test_build_dependency_graph_excludes_inactive(
    logger_manager: LoggerManager,
) -> None:
    store = build_store(
        ["a", tool("b", active=False), "c"], [("a", "b"), ("b", "c"), ("a", "c")]
    )
    service = service_for(store, logger_manager)
    graph = service.build_dependency_graph()
    assert graph.nodes == {"a", "c"}
    assert graph.edges() == [("a", "c")]
    full = service.build_dependency_graph(include_inactive=True)
    assert full.edges() == [("a", "b"), ("a", "c"), ("b", "c")]


def test_required_only_graph_drops_optional_edges(
    logger_manager: LoggerManager,
) -> None:
    store = build_store(["a", "b", "c"], [("a", "b"), ("b", "c", OPTIONAL)])
    service = service_for(store, logger_manager)
    assert service.build_dependency_graph(required_only=True).edges() == [("a", "b")]
    assert service.dependency_types() == {
        ("a", "b"): DependencyType.REQUIRED,
        ("b", "c"): DependencyType.OPTIONAL,
    }


def test_graphs_are_rebuilt_per_call(
    store, graph_service: ToolDependencyGraphService
) -> None:
    first = graph_service.build_dependency_graph()
    first.remove_node("tool1")
    store.remove_dependency("tool2", "tool3")
    second = graph_service.build_dependency_graph()
    assert "tool1" in second
    assert not second.has_edge("tool2", "tool3")


def test_dependency_closure_of_leaf(graph_service: ToolDependencyGraphService) -> None:
    assert graph_service.get_dependency_closure(["tool3"]) == {
        "tool1",
        "tool2",
        "tool3",
    }


def test_dependency_closure_is_upward_closed(
    graph_service: ToolDependencyGraphService,
) -> None:
    closure = graph_service.get_dependency_closure(["tool3", "tool4"])
    graph = graph_service.build_dependency_graph(required_only=True)
    for node in closure:
        assert graph.predecessors(node) <= closure
    assert graph_service.get_dependency_closure(["tool1"]) == {"tool1"}


def test_dependency_closure_ignores_optional_prerequisites(
    logger_manager: LoggerManager,
) -> None:
    store = build_store(["a", "b", "c"], [("a", "c"), ("b", "c", OPTIONAL)])
    service = service_for(store, logger_manager)
    assert service.get_dependency_closure(["c"]) == {"a", "c"}


def test_dependency_closure_unknown_tool(
    graph_service: ToolDependencyGraphService,
) -> None:
    with pytest.raises(UnknownToolError) as excinfo:
        graph_service.get_dependency_closure(["tool3", "ghost", "alpha"])
    assert excinfo.value.tool_ids == ["alpha", "ghost"]


def test_inactive_tool_is_unknown_for_planning(logger_manager: LoggerManager) -> None:
    store = build_store(["a", tool("b", active=False)], [("a", "b")])
    service = service_for(store, logger_manager, include_inactive=True)
    with pytest.raises(UnknownToolError):
        service.get_dependency_closure(["b"])


def test_topological_sort_places_prerequisites_first(
    graph_service: ToolDependencyGraphService,
) -> None:
    order = graph_service.topological_sort(["tool1", "tool2", "tool3", "tool4"])
    assert order == ["tool1", "tool2", "tool3", "tool4"]


def test_topological_sort_uses_lexical_tie_break(
    logger_manager: LoggerManager,
) -> None:
    store = build_store(["c", "a", "b", "root"], [("root", "a")])
    service = service_for(store, logger_manager)
    assert service.topological_sort(["root", "a", "b", "c"]) == ["b", "c", "root", "a"]


def test_topological_sort_reports_required_cycle(
    logger_manager: LoggerManager,
) -> None:
    store = build_store(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
    service = service_for(store, logger_manager)
    with pytest.raises(CycleDetectedError) as excinfo:
        service.topological_sort(["a", "b", "c"])
    assert excinfo.value.cycle == ["a", "b", "c"]


def test_optional_edges_refine_order_when_acyclic(
    logger_manager: LoggerManager,
) -> None:
    store = build_store(["a", "b"], [("b", "a", OPTIONAL)])
    assert service_for(store, logger_manager).topological_sort(["a", "b"]) == ["b", "a"]
    relaxed = service_for(store, logger_manager, respect_optional_order=False)
    assert relaxed.topological_sort(["a", "b"]) == ["a", "b"]


def test_optional_cycle_falls_back_to_required_order(
    logger_manager: LoggerManager,
) -> None:
    store = build_store(["a", "b"], [("a", "b"), ("b", "a", OPTIONAL)])
    service = service_for(store, logger_manager)
    assert service.topological_sort(["a", "b"]) == ["a", "b"]


def test_graph_build_records_metrics(
    graph_service: ToolDependencyGraphService, logger_manager: LoggerManager
) -> None:
    graph_service.get_dependency_closure(["tool3"])
    metrics = logger_manager.get_metrics()
    assert metrics["dependency_graph.nodes"]["value"] == 4
    assert metrics["dependency_graph.build.duration"]["type"] == "histogram"
    assert metrics["dependency_graph.closure.duration"]["count"] == 1
