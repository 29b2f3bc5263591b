"""Loads planner overrides from the environment and `.env` files."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

from toolplan.constants import ENV_PREFIX


@dataclass(frozen=True)
class EnvOverrideSpec:
    """Describes how a setting is exposed as an environment variable."""

    setting: str
    env_var: str
    description: str


ENV_REGISTRY: tuple[EnvOverrideSpec, ...] = (
    EnvOverrideSpec(
        "affinity_policy",
        f"{ENV_PREFIX}AFFINITY_POLICY",
        "Optimization policy: annotate or split",
    ),
    EnvOverrideSpec(
        "max_plan_versions",
        f"{ENV_PREFIX}MAX_PLAN_VERSIONS",
        "Retention per request signature; empty or 0 keeps every version",
    ),
    EnvOverrideSpec(
        "respect_optional_order",
        f"{ENV_PREFIX}RESPECT_OPTIONAL_ORDER",
        "Honour optional dependencies in the topological order when acyclic",
    ),
    EnvOverrideSpec(
        "include_inactive",
        f"{ENV_PREFIX}INCLUDE_INACTIVE",
        "Default for building graphs that include inactive tools",
    ),
    EnvOverrideSpec("log_level", f"{ENV_PREFIX}LOG_LEVEL", "Planner log level"),
    EnvOverrideSpec(
        "structured_logging",
        f"{ENV_PREFIX}STRUCTURED_LOGGING",
        "Emit JSON log records",
    ),
)


def load_environment(dotenv_path: str | Path | None = None) -> None:
    """Load a `.env` file when available; existing variables win."""
    path = Path(dotenv_path) if dotenv_path else Path(".env")
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def env_overrides() -> dict[str, str]:
    """Return raw string overrides for settings present in the environment."""
    overrides: dict[str, str] = {}
    for override in ENV_REGISTRY:
        value = os.getenv(override.env_var)
        if value is not None:
            overrides[override.setting] = value
    return overrides


__all__ = ["ENV_REGISTRY", "EnvOverrideSpec", "env_overrides", "load_environment"]
