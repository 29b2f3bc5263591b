"""Schemas describing registered tools and their dependency records."""

from __future__ import annotations

from pydantic import Field, model_validator

from toolplan.enums import DependencyType, ParameterSource, ToolType
from toolplan.schema.base import TypedBaseModel


class ToolParameter(TypedBaseModel):
    """Parameter declaration attached to a tool."""

    name: str = Field(..., min_length=1, description="Parameter name")
    required: bool = Field(True, description="Whether execution needs a value")
    priority: int = Field(0, description="Lower values are asked for first")
    description: str = Field("", description="Human-readable explanation")
    example: str | None = Field(None, description="Example value")
    default: str | None = Field(None, description="Default value, if any")
    source: ParameterSource = Field(
        ParameterSource.USER_INPUT, description="Expected origin of the value"
    )


class ToolNode(TypedBaseModel):
    """Read-only view of a tool as exposed by the tool store."""

    id: str = Field(..., min_length=1, description="Stable tool identifier")
    name: str = Field("", description="Display name, defaults to the id")
    active: bool = Field(True, description="Inactive tools are excluded from plans")
    tool_type: ToolType = Field(ToolType.FUNCTION, description="Kind of tool")
    parameters: tuple[ToolParameter, ...] = Field(default_factory=tuple)
    affinity_key: str | None = Field(
        None, description="Explicit shared-resource key for the optimization pass"
    )
    base_url: str | None = Field(
        None, description="Endpoint root for API tools, used to derive affinity"
    )

    @model_validator(mode="after")
    def _check_parameters(self) -> ToolNode:
        names = [parameter.name for parameter in self.parameters]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(
                f"Tool {self.id} declares duplicate parameters: {', '.join(duplicates)}"
            )
        return self

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def required_parameter_names(self) -> frozenset[str]:
        return frozenset(p.name for p in self.parameters if p.required)

    @property
    def parameter_names(self) -> frozenset[str]:
        return frozenset(p.name for p in self.parameters)


class ParameterMapping(TypedBaseModel):
    """Binding of a prerequisite's output parameter to a dependent's input."""

    source_parameter: str = Field(..., min_length=1)
    target_parameter: str = Field(..., min_length=1)
    source_tool_id: str | None = Field(
        None, description="Prerequisite producing the value"
    )
    id: str | None = Field(None, description="Identifier in the tool store")


class ToolDependencyRecord(TypedBaseModel):
    """Persisted prerequisite relationship: ``prerequisite_id`` before ``dependent_id``."""

    prerequisite_id: str = Field(..., min_length=1)
    dependent_id: str = Field(..., min_length=1)
    dependency_type: DependencyType = Field(DependencyType.REQUIRED)
    parameter_mappings: tuple[ParameterMapping, ...] = Field(default_factory=tuple)

    @property
    def edge(self) -> tuple[str, str]:
        return (self.prerequisite_id, self.dependent_id)

    @property
    def is_required(self) -> bool:
        return self.dependency_type is DependencyType.REQUIRED


class ParameterRequirement(TypedBaseModel):
    """Unmet parameter reported for a tool in an execution plan."""

    name: str
    required: bool
    priority: int = 0
    description: str = ""
    example: str | None = None
    default: str | None = None

    @classmethod
    def from_parameter(cls, parameter: ToolParameter) -> ParameterRequirement:
        return cls(
            name=parameter.name,
            required=parameter.required,
            priority=parameter.priority,
            description=parameter.description,
            example=parameter.example,
            default=parameter.default,
        )


__all__ = [
    "ParameterMapping",
    "ParameterRequirement",
    "ToolDependencyRecord",
    "ToolNode",
    "ToolParameter",
]
