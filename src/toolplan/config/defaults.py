"""Explicit default settings for the planner."""

from __future__ import annotations

PLANNER_DEFAULTS: dict[str, object] = {
    "affinity_policy": "annotate",
    "max_plan_versions": None,
    "respect_optional_order": True,
    "include_inactive": False,
    "log_level": "INFO",
    "structured_logging": False,
}
