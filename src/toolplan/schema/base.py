"""Shared Pydantic base class with consistent configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TypedBaseModel(BaseModel):
    """Centralized base ensuring every planner schema shares one contract.

    Schemas are immutable value objects: frozen models are hashable, which
    lets requirements and mappings be placed in sets and compared by value.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")
