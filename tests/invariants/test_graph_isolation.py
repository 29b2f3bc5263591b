"""Invariant: the graph package knows nothing about tools or services."""

from __future__ import annotations

import ast
from pathlib import Path

ALLOWED_INTERNAL = {"toolplan.enums", "toolplan.errors", "toolplan.graph"}


def _internal_imports(path: Path) -> list[tuple[int, str]]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    found: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            found.extend((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            found.append((node.lineno, node.module))
    return [(line, name) for line, name in found if name.startswith("toolplan")]


def test_graph_package_is_tool_agnostic() -> None:
    graph_root = Path(__file__).resolve().parents[2] / "src" / "toolplan" / "graph"
    violations = [
        f"{path}:{line} imports {module}"
        for path in sorted(graph_root.rglob("*.py"))
        for line, module in _internal_imports(path)
        if module not in ALLOWED_INTERNAL and not module.startswith("toolplan.graph.")
    ]
    assert not violations, "Graph package imports planner internals:\n" + "\n".join(
        violations
    )


def test_schema_does_not_import_services() -> None:
    schema_root = Path(__file__).resolve().parents[2] / "src" / "toolplan" / "schema"
    violations = [
        f"{path}:{line} imports {module}"
        for path in sorted(schema_root.rglob("*.py"))
        for line, module in _internal_imports(path)
        if module.startswith(("toolplan.services", "toolplan.collaborators"))
    ]
    assert not violations, "\n".join(violations)
