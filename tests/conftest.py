from __future__ import annotations

import os
import sys

import pytest

sys.dont_write_bytecode = True
os.environ.setdefault("PYTHONDONTWRITEBYTECODE", "1")

from tests.utils.tool_fixtures import chain_store  # noqa: E402

from toolplan.collaborators import InMemoryToolStore  # noqa: E402
from toolplan.config import ENV_REGISTRY, PlannerSettings  # noqa: E402
from toolplan.services import (  # noqa: E402
    ExecutionPlanService,
    ToolDependencyGraphService,
)
from toolplan.utilities.logger_manager import (  # noqa: E402
    LoggerConfig,
    LoggerManager,
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for override in ENV_REGISTRY:
        monkeypatch.delenv(override.env_var, raising=False)


@pytest.fixture
def logger_manager() -> LoggerManager:
    return LoggerManager(LoggerConfig(log_level="DEBUG"))


@pytest.fixture
def store() -> InMemoryToolStore:
    """tool1 -> tool2 -> tool3 and tool1 -> tool4, all REQUIRED."""
    return chain_store()


@pytest.fixture
def settings() -> PlannerSettings:
    return PlannerSettings()


@pytest.fixture
def graph_service(
    store: InMemoryToolStore,
    settings: PlannerSettings,
    logger_manager: LoggerManager,
) -> ToolDependencyGraphService:
    return ToolDependencyGraphService(store, settings, logger_manager)


@pytest.fixture
def plan_service(
    store: InMemoryToolStore,
    settings: PlannerSettings,
    logger_manager: LoggerManager,
) -> ExecutionPlanService:
    return ExecutionPlanService.from_store(store, settings, logger_manager)
