"""Schemas dedicated to execution plans."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
import uuid

from pydantic import Field

from toolplan.constants import DRAFT_PLAN_VERSION, PLAN_SCHEMA_VERSION
from toolplan.schema.base import TypedBaseModel
from toolplan.schema.tools import ParameterMapping, ParameterRequirement

RequestSignature = tuple[str, ...]


def request_signature(tool_ids: Iterable[str]) -> RequestSignature:
    """Sorted, de-duplicated requested ids; the versioning key of a plan.

    Parameter values are deliberately not part of the signature so that
    re-planning the same tools with more parameters yields a new version.
    """
    return tuple(sorted(set(tool_ids)))


class ExecutionPlan(TypedBaseModel):
    """Ordered, layered plan for a requested set of tools."""

    schema_version: int = Field(
        PLAN_SCHEMA_VERSION, description="Layout version of the serialized plan"
    )
    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    requested_tool_ids: tuple[str, ...] = Field(
        ..., description="Tool ids exactly as requested by the caller"
    )
    signature: RequestSignature = Field(..., description="Versioning key")
    tools_in_order: tuple[str, ...] = Field(
        ..., description="Topological order of the dependency closure"
    )
    missing_parameters: dict[str, frozenset[ParameterRequirement]] = Field(
        default_factory=dict
    )
    parameter_mappings: dict[str, tuple[ParameterMapping, ...]] = Field(
        default_factory=dict
    )
    has_missing_required_parameters: bool = False
    parallel_execution_groups: tuple[frozenset[str], ...] = Field(
        default_factory=tuple,
        description="Group i may run once every group before it has completed",
    )
    affinity_annotations: tuple[dict[str, tuple[str, ...]], ...] = Field(
        default_factory=tuple,
        description="Per group: affinity key -> tools preferring sequential calls",
    )
    version: int = Field(DRAFT_PLAN_VERSION, ge=DRAFT_PLAN_VERSION)
    optimized: bool = False
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_published(self) -> bool:
        return self.version > DRAFT_PLAN_VERSION

    @property
    def parallel_group_count(self) -> int:
        return len(self.parallel_execution_groups)

    def parallel_group(self, index: int) -> frozenset[str]:
        """Return group ``index``, or an empty set when out of range."""
        if 0 <= index < len(self.parallel_execution_groups):
            return self.parallel_execution_groups[index]
        return frozenset()

    def has_tool_missing_parameters(self, tool_id: str) -> bool:
        return bool(self.missing_parameters.get(tool_id))

    def all_parameter_requirements(self) -> dict[str, list[ParameterRequirement]]:
        """Missing requirements per tool, ordered by priority then name."""
        return {
            tool_id: sorted(
                requirements, key=lambda item: (item.priority, item.name)
            )
            for tool_id, requirements in self.missing_parameters.items()
        }

    def with_version(self, version: int) -> ExecutionPlan:
        return self.model_copy(update={"version": version})


__all__ = ["ExecutionPlan", "RequestSignature", "request_signature"]
