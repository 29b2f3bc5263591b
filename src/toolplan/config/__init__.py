"""Planner configuration: defaults, environment overrides and settings."""

from __future__ import annotations

from .defaults import PLANNER_DEFAULTS
from .env import ENV_REGISTRY, EnvOverrideSpec, env_overrides, load_environment
from .settings import PlannerSettings

__all__ = [
    "ENV_REGISTRY",
    "EnvOverrideSpec",
    "PLANNER_DEFAULTS",
    "PlannerSettings",
    "env_overrides",
    "load_environment",
]
