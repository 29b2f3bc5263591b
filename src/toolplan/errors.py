"""Planner error taxonomy.

Every error raised by the planning core derives from :class:`PlannerError`
and carries a stable :class:`PlannerErrorCode` plus a ``details`` mapping so
that a transport layer can translate it without parsing messages.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping, Sequence
from enum import Enum
from typing import Any


class PlannerErrorCode(str, Enum):
    """Stable error codes exposed by the planning core."""

    UNKNOWN_NODE = "UNKNOWN_NODE"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    CYCLE_DETECTED = "CYCLE_DETECTED"
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"
    INVALID_PARAMETER_MAPPING = "INVALID_PARAMETER_MAPPING"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class PlannerError(Exception):
    """Base class for all planning failures."""

    code: PlannerErrorCode = PlannerErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, details: Mapping[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message, **self.details}


class UnknownNodeError(PlannerError, KeyError):
    """Raised when a graph operation references a node that was never added."""

    code = PlannerErrorCode.UNKNOWN_NODE

    def __init__(self, nodes: Iterable[Hashable]):
        self.nodes = sorted(nodes, key=str)
        super().__init__(
            f"Unknown node(s): {', '.join(map(str, self.nodes))}",
            {"nodes": list(self.nodes)},
        )


class UnknownToolError(UnknownNodeError):
    """Raised when requested tool ids are absent from the current registry."""

    code = PlannerErrorCode.UNKNOWN_TOOL

    def __init__(self, tool_ids: Iterable[str]):
        super().__init__(tool_ids)
        self.tool_ids: list[str] = [str(tool_id) for tool_id in self.nodes]
        self.message = f"Unknown tool(s): {', '.join(self.tool_ids)}"
        self.details = {"tool_ids": list(self.tool_ids)}


class CycleDetectedError(PlannerError):
    """Raised when no topological order exists; carries the offending cycle."""

    code = PlannerErrorCode.CYCLE_DETECTED

    def __init__(self, cycle: Sequence[Hashable], message: str | None = None):
        self.cycle = list(cycle)
        rendered = " -> ".join(map(str, [*self.cycle, *self.cycle[:1]]))
        super().__init__(
            message or f"Cycle detected: {rendered}",
            {"cycle": list(self.cycle)},
        )


class VersionNotFoundError(PlannerError, LookupError):
    """Raised when a plan version was never produced for a request signature."""

    code = PlannerErrorCode.VERSION_NOT_FOUND

    def __init__(self, signature: Sequence[str], version: int):
        self.signature = tuple(signature)
        self.version = version
        super().__init__(
            f"Execution plan version {version} not found for tools "
            f"[{', '.join(self.signature)}]",
            {"signature": list(self.signature), "version": version},
        )


class InvalidParameterMappingError(PlannerError, ValueError):
    """Raised when a parameter mapping references an undeclared parameter."""

    code = PlannerErrorCode.INVALID_PARAMETER_MAPPING

    def __init__(self, parameter: str, reason: str):
        self.parameter = parameter
        self.reason = reason
        super().__init__(
            f"Invalid parameter mapping for '{parameter}': {reason}",
            {"parameter": parameter, "reason": reason},
        )


class ConfigurationError(PlannerError, ValueError):
    """Raised when planner settings cannot be parsed."""

    code = PlannerErrorCode.CONFIGURATION_ERROR


__all__ = [
    "ConfigurationError",
    "CycleDetectedError",
    "InvalidParameterMappingError",
    "PlannerError",
    "PlannerErrorCode",
    "UnknownNodeError",
    "UnknownToolError",
    "VersionNotFoundError",
]
