"""Reference parameter requirement service backed by a tool store."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
from typing import Any

from toolplan.collaborators.interfaces import MissingParameters, ToolStore
from toolplan.schema.tools import ParameterRequirement

logger = logging.getLogger(__name__)


class StoreParameterRequirementService:
    """Reports declared parameters with no usable value among those provided.

    A parameter counts as provided when its name is present in
    ``provided_parameters`` with a value other than ``None``. Values are not
    validated here.
    """

    def __init__(self, store: ToolStore) -> None:
        self._store = store

    def identify_missing_parameters(
        self,
        ordered_tool_ids: Sequence[str],
        provided_parameters: Mapping[str, Any],
    ) -> dict[str, frozenset[ParameterRequirement]]:
        missing: dict[str, frozenset[ParameterRequirement]] = {}
        for tool_id in ordered_tool_ids:
            tool = self._store.get_tool(tool_id)
            if tool is None:
                logger.debug("Skipping parameter check for unknown tool %s", tool_id)
                continue
            unmet = frozenset(
                ParameterRequirement.from_parameter(parameter)
                for parameter in tool.parameters
                if provided_parameters.get(parameter.name) is None
            )
            if unmet:
                missing[tool_id] = unmet
        return missing

    def has_required_parameters_missing(self, missing: MissingParameters) -> bool:
        return any(
            requirement.required
            for requirements in missing.values()
            for requirement in requirements
        )


__all__ = ["StoreParameterRequirementService"]
