"""Invariant: public modules expose exactly their declared __all__."""

from __future__ import annotations

import importlib

PUBLIC_MODULES = {
    "toolplan": (
        "API_VERSION",
        "CycleDetectedError",
        "DirectedGraph",
        "ExecutionPlan",
        "ExecutionPlanService",
        "PlannerError",
        "ToolDependencyGraphService",
        "UnknownNodeError",
        "UnknownToolError",
        "VersionNotFoundError",
    ),
    "toolplan.graph": ("DirectedGraph", "Direction"),
    "toolplan.services": (
        "POLICIES",
        "AffinityPolicy",
        "AnnotateOnlyPolicy",
        "DependencyAnalysisService",
        "DependencySnapshot",
        "DependencyValidator",
        "ExecutionPlanService",
        "OptimizedGroups",
        "PlanVersionStore",
        "SplitByAffinityPolicy",
        "ToolDependencyGraphService",
        "policy_for",
    ),
}


def _star_imported(module_name: str) -> set[str]:
    namespace: dict[str, object] = {"__builtins__": __builtins__}
    exec(f"from {module_name} import *", namespace)
    namespace.pop("__builtins__", None)
    return set(namespace.keys())


def test_public_star_imports_match_all() -> None:
    for module_name, expected in PUBLIC_MODULES.items():
        module = importlib.import_module(module_name)
        exports = tuple(getattr(module, "__all__", ()))
        assert exports == expected, (
            f"{module_name} __all__ changed: expected {expected}, got {exports}"
        )
        assert _star_imported(module_name) == set(expected)


def test_api_version_marker() -> None:
    import toolplan

    assert toolplan.API_VERSION == "1.0"
