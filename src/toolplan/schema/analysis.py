"""Schemas returned by dependency analysis queries."""

from __future__ import annotations

from pydantic import Field

from toolplan.schema.base import TypedBaseModel


class ToolSummary(TypedBaseModel):
    id: str
    name: str
    active: bool = True


class CriticalDependency(TypedBaseModel):
    """Prerequisite whose removal would affect many tools."""

    tool: ToolSummary
    dependent_count: int = Field(..., ge=0)


class DependencyAnalysis(TypedBaseModel):
    """Structural view of one tool's position in the dependency graph."""

    tool: ToolSummary
    direct_dependencies: tuple[ToolSummary, ...] = ()
    indirect_dependencies: tuple[ToolSummary, ...] = ()
    direct_dependents: tuple[ToolSummary, ...] = ()
    indirect_dependents: tuple[ToolSummary, ...] = ()
    required_dependency_count: int = 0
    optional_dependency_count: int = 0
    cycles: tuple[tuple[str, ...], ...] = ()
    critical_dependencies: tuple[CriticalDependency, ...] = ()

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    @property
    def all_dependency_count(self) -> int:
        return len(self.direct_dependencies) + len(self.indirect_dependencies)

    @property
    def all_dependent_count(self) -> int:
        return len(self.direct_dependents) + len(self.indirect_dependents)


class RemovalImpact(TypedBaseModel):
    """Tools affected if a tool were removed from the registry."""

    tool: ToolSummary
    high_impact: tuple[ToolSummary, ...] = ()
    medium_impact: tuple[ToolSummary, ...] = ()

    @property
    def total_impacted_tools(self) -> int:
        return len(self.high_impact) + len(self.medium_impact)


class CommonDependencies(TypedBaseModel):
    """Shared and per-tool prerequisites of several tools."""

    tool_ids: tuple[str, ...]
    common: tuple[str, ...] = ()
    unique: dict[str, tuple[str, ...]] = Field(default_factory=dict)


__all__ = [
    "CommonDependencies",
    "CriticalDependency",
    "DependencyAnalysis",
    "RemovalImpact",
    "ToolSummary",
]
