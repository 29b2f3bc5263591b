"""Global constants shared by the planner services."""

from __future__ import annotations

API_VERSION = "1.0"
"""Version of the public planning surface exposed by this package."""

PLAN_SCHEMA_VERSION = 1
FIRST_PLAN_VERSION = 1
DRAFT_PLAN_VERSION = 0
MAX_CRITICAL_DEPENDENCIES = 5
ENV_PREFIX = "TOOLPLAN_"
