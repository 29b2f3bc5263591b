"""Centralized semantic enums for the tool planner."""

from __future__ import annotations

from enum import Enum


class DependencyType(str, Enum):
    """Strength of a prerequisite relationship between two tools."""

    REQUIRED = "required"
    OPTIONAL = "optional"


class ToolType(str, Enum):
    """Kinds of registered tools."""

    API_TOOL = "api_tool"
    FUNCTION = "function"
    WORKFLOW = "workflow"
    MANUAL = "manual"


class ParameterSource(str, Enum):
    """Where the value of a tool parameter is expected to come from."""

    USER_INPUT = "user_input"
    SYSTEM_PROVIDED = "system_provided"
    DEPENDENT_TOOL = "dependent_tool"
    DEFAULT_VALUE = "default_value"
    CONTEXT_VARIABLE = "context_variable"
    API_RESPONSE = "api_response"
    COMPUTED = "computed"


class Direction(str, Enum):
    """Traversal direction over a directed graph."""

    FORWARD = "forward"
    REVERSE = "reverse"


class AffinityPolicyName(str, Enum):
    """Registered strategies for the API-affinity optimization pass."""

    ANNOTATE = "annotate"
    SPLIT = "split"


__all__ = [
    "AffinityPolicyName",
    "DependencyType",
    "Direction",
    "ParameterSource",
    "ToolType",
]
