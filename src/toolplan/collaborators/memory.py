"""Thread-safe in-memory tool store.

Serves as the reference persistence collaborator for tests, demos and
embedding the planner without a database. Registries can be declared in
YAML:

.. code-block:: yaml

    tools:
      - id: fetch_user
        tool_type: api_tool
        base_url: https://api.example.com/v1
        parameters:
          - {name: user_id, required: true}
    dependencies:
      - prerequisite: fetch_user
        dependent: notify_user
        type: required
        parameter_mappings:
          - {source: email, target: recipient}
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
import threading
from typing import Any

from pydantic import ValidationError
import yaml

from toolplan.enums import DependencyType
from toolplan.errors import ConfigurationError, UnknownToolError
from toolplan.schema.tools import ParameterMapping, ToolDependencyRecord, ToolNode


class InMemoryToolStore:
    """Holds tools and dependency records behind a single re-entrant lock."""

    def __init__(
        self,
        tools: Iterable[ToolNode] = (),
        dependencies: Iterable[ToolDependencyRecord] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._tools: dict[str, ToolNode] = {}
        self._dependencies: dict[tuple[str, str], ToolDependencyRecord] = {}
        for tool in tools:
            self.add_tool(tool)
        for dependency in dependencies:
            self.add_dependency(dependency)

    # ToolStore protocol ------------------------------------------------

    def list_tools(self, include_inactive: bool = False) -> list[ToolNode]:
        with self._lock:
            return [
                tool
                for tool in self._tools.values()
                if include_inactive or tool.active
            ]

    def list_dependency_edges(self) -> list[ToolDependencyRecord]:
        with self._lock:
            return list(self._dependencies.values())

    def get_tool(self, tool_id: str) -> ToolNode | None:
        with self._lock:
            return self._tools.get(tool_id)

    # Mutation ----------------------------------------------------------

    def add_tool(self, tool: ToolNode) -> None:
        """Insert or replace a tool."""
        with self._lock:
            self._tools[tool.id] = tool

    def set_active(self, tool_id: str, active: bool) -> None:
        with self._lock:
            tool = self._tools.get(tool_id)
            if tool is None:
                raise UnknownToolError([tool_id])
            self._tools[tool_id] = tool.model_copy(update={"active": active})

    def remove_tool(self, tool_id: str) -> None:
        """Delete a tool and every dependency record that mentions it."""
        with self._lock:
            if self._tools.pop(tool_id, None) is None:
                raise UnknownToolError([tool_id])
            self._dependencies = {
                edge: record
                for edge, record in self._dependencies.items()
                if tool_id not in edge
            }

    def add_dependency(self, record: ToolDependencyRecord) -> None:
        """Insert or replace the record for ``(prerequisite, dependent)``."""
        with self._lock:
            unknown = [
                tool_id for tool_id in record.edge if tool_id not in self._tools
            ]
            if unknown:
                raise UnknownToolError(unknown)
            self._dependencies[record.edge] = record

    def remove_dependency(self, prerequisite_id: str, dependent_id: str) -> None:
        with self._lock:
            self._dependencies.pop((prerequisite_id, dependent_id), None)

    def dependencies_of(self, tool_id: str) -> list[ToolDependencyRecord]:
        """Records in which ``tool_id`` is the dependent."""
        with self._lock:
            return [
                record
                for record in self._dependencies.values()
                if record.dependent_id == tool_id
            ]

    # Loading -----------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> InMemoryToolStore:
        """Build a store from a ``{"tools": [...], "dependencies": [...]}`` mapping."""
        try:
            tools = [
                ToolNode.model_validate(_normalize_tool(raw))
                for raw in data.get("tools") or []
            ]
            dependencies = [
                _parse_dependency(raw) for raw in data.get("dependencies") or []
            ]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid tool registry: {exc}") from exc
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise ConfigurationError(
                f"Malformed tool registry entry: {exc!r}"
            ) from exc
        return cls(tools=tools, dependencies=dependencies)

    @classmethod
    def from_yaml(cls, path: Path | str) -> InMemoryToolStore:
        """Load a registry file; a missing file is a configuration error."""
        resolved = Path(path)
        if not resolved.is_file():
            raise ConfigurationError(f"Tool registry not found: {resolved}")
        raw = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"Tool registry must be a mapping: {resolved}")
        return cls.from_mapping(raw)


def _normalize_tool(raw: Mapping[str, Any]) -> dict[str, Any]:
    tool = dict(raw)
    tool["parameters"] = tuple(tool.get("parameters") or ())
    return tool


def _parse_dependency(raw: Mapping[str, Any]) -> ToolDependencyRecord:
    prerequisite = raw.get("prerequisite", raw.get("prerequisite_id"))
    dependent = raw.get("dependent", raw.get("dependent_id"))
    mappings = tuple(
        ParameterMapping(
            source_parameter=entry.get("source", entry.get("source_parameter")),
            target_parameter=entry.get("target", entry.get("target_parameter")),
            source_tool_id=prerequisite,
            id=entry.get("id"),
        )
        for entry in raw.get("parameter_mappings") or []
    )
    return ToolDependencyRecord(
        prerequisite_id=prerequisite,
        dependent_id=dependent,
        dependency_type=DependencyType(
            str(raw.get("type", DependencyType.REQUIRED.value)).lower()
        ),
        parameter_mappings=mappings,
    )


__all__ = ["InMemoryToolStore"]
