"""Generic graph primitives with no tool semantics."""

from __future__ import annotations

from toolplan.enums import Direction

from .directed import DirectedGraph

__all__ = ["DirectedGraph", "Direction"]
