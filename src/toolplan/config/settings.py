"""Planner settings parsed from `planner.yaml` and environment overrides."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from toolplan.config.defaults import PLANNER_DEFAULTS
from toolplan.config.env import env_overrides, load_environment
from toolplan.enums import AffinityPolicyName
from toolplan.errors import ConfigurationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Setting '{name}' expects a boolean, got {value!r}")


def _as_retention(value: Any) -> int | None:
    if value is None or (isinstance(value, str) and value.strip().lower() in {"", "none"}):
        return None
    try:
        limit = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Setting 'max_plan_versions' expects an integer, got {value!r}"
        ) from exc
    if limit < 0:
        raise ConfigurationError("Setting 'max_plan_versions' cannot be negative")
    return limit or None


def _as_policy(value: Any) -> AffinityPolicyName:
    try:
        return AffinityPolicyName(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(policy.value for policy in AffinityPolicyName)
        raise ConfigurationError(
            f"Unknown affinity policy {value!r}; expected one of: {allowed}"
        ) from exc


@dataclass(frozen=True)
class PlannerSettings:
    """Behavioural switches of the planning services."""

    affinity_policy: AffinityPolicyName = AffinityPolicyName.ANNOTATE
    max_plan_versions: int | None = None
    respect_optional_order: bool = True
    include_inactive: bool = False
    log_level: str = "INFO"
    structured_logging: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> PlannerSettings:
        """Build settings from a mapping layered over ``PLANNER_DEFAULTS``."""
        known = {field.name for field in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigurationError(f"Unknown planner settings: {', '.join(unknown)}")
        merged = {**PLANNER_DEFAULTS, **raw}
        return cls(
            affinity_policy=_as_policy(merged["affinity_policy"]),
            max_plan_versions=_as_retention(merged["max_plan_versions"]),
            respect_optional_order=_as_bool(
                "respect_optional_order", merged["respect_optional_order"]
            ),
            include_inactive=_as_bool("include_inactive", merged["include_inactive"]),
            log_level=str(merged["log_level"]).upper(),
            structured_logging=_as_bool(
                "structured_logging", merged["structured_logging"]
            ),
        )

    @classmethod
    def load(
        cls,
        path: Path | str | None = None,
        *,
        dotenv_path: Path | str | None = None,
        use_env: bool = True,
    ) -> PlannerSettings:
        """Load a YAML file if it exists, then apply environment overrides."""
        raw: dict[str, Any] = {}
        if path is not None:
            resolved = Path(path)
            if resolved.is_file():
                loaded = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
                if not isinstance(loaded, Mapping):
                    raise ConfigurationError(
                        f"Planner settings must be a mapping: {resolved}"
                    )
                raw.update(loaded.get("planner", loaded))
        if use_env:
            load_environment(dotenv_path)
            raw.update(env_overrides())
        return cls.from_mapping(raw)


__all__ = ["PlannerSettings"]
