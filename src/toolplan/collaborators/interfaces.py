"""Contracts of the external collaborators consumed by the planner.

The planning core only depends on these protocols; persistence, parameter
semantics and endpoint metadata live behind them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from toolplan.schema.tools import (
    ParameterRequirement,
    ToolDependencyRecord,
    ToolNode,
)

MissingParameters = Mapping[str, frozenset[ParameterRequirement]]


@runtime_checkable
class ToolStore(Protocol):
    """Source of tool and dependency records."""

    def list_tools(self, include_inactive: bool = False) -> list[ToolNode]: ...

    def list_dependency_edges(self) -> list[ToolDependencyRecord]: ...

    def get_tool(self, tool_id: str) -> ToolNode | None: ...


@runtime_checkable
class ParameterRequirementService(Protocol):
    """Computes which parameters are still needed to run an ordered tool list."""

    def identify_missing_parameters(
        self,
        ordered_tool_ids: Sequence[str],
        provided_parameters: Mapping[str, Any],
    ) -> MissingParameters: ...

    def has_required_parameters_missing(self, missing: MissingParameters) -> bool: ...


@runtime_checkable
class ApiAffinityService(Protocol):
    """Maps a tool to the downstream resource it calls, if any."""

    def get_affinity_key(self, tool_id: str) -> str | None: ...


__all__ = [
    "ApiAffinityService",
    "MissingParameters",
    "ParameterRequirementService",
    "ToolStore",
]
