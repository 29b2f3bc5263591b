from __future__ import annotations

from pathlib import Path

import pytest
from tests.utils.tool_fixtures import build_store, tool

from toolplan.collaborators import (
    ApiAffinityService,
    InMemoryToolStore,
    ParameterRequirementService,
    StoreAffinityService,
    StoreParameterRequirementService,
    ToolStore,
    normalize_base_url,
)
from toolplan.enums import DependencyType, ToolType
from toolplan.errors import ConfigurationError, UnknownToolError

REGISTRY_YAML = """
tools:
  - id: fetch_user
    tool_type: api_tool
    base_url: https://api.example.com/v1/
    parameters:
      - {name: user_id, required: true, priority: 1}
      - {name: fields, required: false}
  - id: notify_user
    parameters:
      - {name: recipient}
  - id: archive
    active: false
dependencies:
  - prerequisite: fetch_user
    dependent: notify_user
    type: REQUIRED
    parameter_mappings:
      - {source: email, target: recipient}
  - prerequisite: notify_user
    dependent: archive
    type: optional
"""


def test_reference_collaborators_satisfy_protocols() -> None:
    store = build_store(["a"])
    assert isinstance(store, ToolStore)
    assert isinstance(StoreParameterRequirementService(store), ParameterRequirementService)
    assert isinstance(StoreAffinityService(store), ApiAffinityService)


def test_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "registry.yaml"
    path.write_text(REGISTRY_YAML, encoding="utf-8")
    store = InMemoryToolStore.from_yaml(path)

    assert [t.id for t in store.list_tools()] == ["fetch_user", "notify_user"]
    assert len(store.list_tools(include_inactive=True)) == 3
    fetch = store.get_tool("fetch_user")
    assert fetch is not None and fetch.tool_type is ToolType.API_TOOL
    assert fetch.required_parameter_names == {"user_id"}

    (first, second) = store.list_dependency_edges()
    assert first.parameter_mappings[0].source_tool_id == "fetch_user"
    assert second.dependency_type is DependencyType.OPTIONAL


def test_from_yaml_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        InMemoryToolStore.from_yaml(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "data",
    [
        {"tools": [{"name": "no id"}]},
        {"tools": [{"id": "a"}], "dependencies": [{"prerequisite": "a"}]},
        {"tools": [{"id": "a"}, {"id": "b"}], "dependencies": [
            {"prerequisite": "a", "dependent": "b", "type": "sometimes"}
        ]},
        {"tools": [{"id": "a", "parameters": [{"name": "x"}, {"name": "x"}]}]},
    ],
)
def test_from_mapping_rejects_malformed_entries(data: dict) -> None:
    with pytest.raises(ConfigurationError):
        InMemoryToolStore.from_mapping(data)


def test_dependencies_must_reference_registered_tools() -> None:
    with pytest.raises(UnknownToolError):
        build_store(["a"], [("a", "b")])


def test_store_mutations() -> None:
    store = build_store(["a", "b", "c"], [("a", "b"), ("b", "c")])
    store.set_active("c", False)
    assert [t.id for t in store.list_tools()] == ["a", "b"]
    store.remove_tool("b")
    assert store.list_dependency_edges() == []
    assert store.dependencies_of("c") == []
    with pytest.raises(UnknownToolError):
        store.remove_tool("b")
    with pytest.raises(UnknownToolError):
        store.set_active("ghost", True)


def test_missing_parameters_treat_none_as_absent() -> None:
    store = build_store([tool("a", required=["x"], optional=["y"]), "b"])
    service = StoreParameterRequirementService(store)
    missing = service.identify_missing_parameters(["a", "b"], {"x": None, "y": 0})
    assert {r.name for r in missing["a"]} == {"x"}
    assert "b" not in missing
    assert service.has_required_parameters_missing(missing)
    assert not service.has_required_parameters_missing(
        service.identify_missing_parameters(["a"], {"x": "1"})
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://API.Example.com:443/v1/", "https://api.example.com/v1"),
        ("http://example.com:80", "http://example.com"),
        ("http://example.com:8080/x?q=1#frag", "http://example.com:8080/x"),
    ],
)
def test_normalize_base_url(raw: str, expected: str) -> None:
    assert normalize_base_url(raw) == expected


def test_affinity_key_resolution() -> None:
    store = build_store(
        [
            tool("explicit", affinity_key="crm", base_url="https://a.example.com"),
            tool("api", base_url="https://A.example.com/"),
            "local",
        ]
    )
    service = StoreAffinityService(store)
    assert service.get_affinity_key("explicit") == "crm"
    assert service.get_affinity_key("api") == "https://a.example.com"
    assert service.get_affinity_key("local") is None
    assert service.get_affinity_key("ghost") is None
