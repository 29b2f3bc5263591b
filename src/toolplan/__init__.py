"""Dependency-aware execution planning for tool registries."""

from __future__ import annotations

from toolplan.constants import API_VERSION
from toolplan.errors import (
    CycleDetectedError,
    PlannerError,
    UnknownNodeError,
    UnknownToolError,
    VersionNotFoundError,
)
from toolplan.graph import DirectedGraph
from toolplan.schema.plan import ExecutionPlan
from toolplan.services import ExecutionPlanService, ToolDependencyGraphService

__all__ = [
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
]
