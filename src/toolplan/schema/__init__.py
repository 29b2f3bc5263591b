"""Pydantic schemas for tools, execution plans and dependency analyses."""

from __future__ import annotations

from .analysis import (
    CommonDependencies,
    CriticalDependency,
    DependencyAnalysis,
    RemovalImpact,
    ToolSummary,
)
from .plan import ExecutionPlan, RequestSignature, request_signature
from .tools import (
    ParameterMapping,
    ParameterRequirement,
    ToolDependencyRecord,
    ToolNode,
    ToolParameter,
)

__all__ = [
    "CommonDependencies",
    "CriticalDependency",
    "DependencyAnalysis",
    "ExecutionPlan",
    "ParameterMapping",
    "ParameterRequirement",
    "RemovalImpact",
    "RequestSignature",
    "ToolDependencyRecord",
    "ToolNode",
    "ToolParameter",
    "ToolSummary",
    "request_signature",
]
