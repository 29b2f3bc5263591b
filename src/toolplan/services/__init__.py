"""Planning services: graph building, plan generation, versioning and analysis."""

from __future__ import annotations

from .analysis import DependencyAnalysisService, DependencyValidator
from .dependency_graph import DependencySnapshot, ToolDependencyGraphService
from .execution_plan import ExecutionPlanService
from .optimization import (
    POLICIES,
    AffinityPolicy,
    AnnotateOnlyPolicy,
    OptimizedGroups,
    SplitByAffinityPolicy,
    policy_for,
)
from .version_store import PlanVersionStore

__all__ = [
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
]
