"""Collaborator contracts and their in-memory reference implementations."""

from __future__ import annotations

from .affinity import StoreAffinityService, normalize_base_url
from .interfaces import (
    ApiAffinityService,
    MissingParameters,
    ParameterRequirementService,
    ToolStore,
)
from .memory import InMemoryToolStore
from .parameters import StoreParameterRequirementService

__all__ = [
    "ApiAffinityService",
    "InMemoryToolStore",
    "MissingParameters",
    "ParameterRequirementService",
    "StoreAffinityService",
    "StoreParameterRequirementService",
    "ToolStore",
    "normalize_base_url",
]
