"""Generic directed graph with deterministic ordering algorithms.

The graph knows nothing about tools: nodes are opaque hashable identifiers
and an edge ``(a, b)`` only states that ``a`` must come before ``b``.
Forward and reverse adjacency are kept as mirror images on every mutation.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Hashable, Iterable, Iterator
import heapq
from typing import Any, Generic, TypeVar

from toolplan.enums import Direction
from toolplan.errors import CycleDetectedError, UnknownNodeError

T = TypeVar("T", bound=Hashable)

SortKey = Callable[[Any], Any]


_EXHAUSTED = object()


def _identity(node: Any) -> Any:
    return node


class DirectedGraph(Generic[T]):
    """Directed graph over opaque node identifiers.

    Args:
        sort_key: Key used whenever several nodes are equally eligible, so
            every algorithm returns the same output for the same graph.
            Defaults to the natural ordering of the node identifiers.
    """

    def __init__(self, sort_key: SortKey | None = None) -> None:
        self._sort_key: SortKey = sort_key or _identity
        self._successors: dict[T, set[T]] = {}
        self._predecessors: dict[T, set[T]] = {}

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def add_node(self, node: T) -> None:
        """Add ``node``; no-op when it is already present."""
        if node in self._successors:
            return
        self._successors[node] = set()
        self._predecessors[node] = set()

    def add_edge(self, source: T, target: T) -> None:
        """Add the edge ``source -> target`` between two existing nodes."""
        self._require(source, target)
        self._successors[source].add(target)
        self._predecessors[target].add(source)

    def remove_edge(self, source: T, target: T) -> None:
        """Remove ``source -> target`` if present."""
        self._require(source, target)
        self._successors[source].discard(target)
        self._predecessors[target].discard(source)

    def remove_node(self, node: T) -> None:
        """Remove ``node`` together with every edge touching it."""
        self._require(node)
        predecessors = self._predecessors.pop(node)
        successors = self._successors.pop(node)
        for predecessor in predecessors - {node}:
            self._successors[predecessor].discard(node)
        for successor in successors - {node}:
            self._predecessors[successor].discard(node)

    def successors(self, node: T) -> frozenset[T]:
        """Return the direct successors of ``node``."""
        self._require(node)
        return frozenset(self._successors[node])

    def predecessors(self, node: T) -> frozenset[T]:
        """Return the direct predecessors of ``node``."""
        self._require(node)
        return frozenset(self._predecessors[node])

    def has_edge(self, source: T, target: T) -> bool:
        return source in self._successors and target in self._successors[source]

    @property
    def nodes(self) -> frozenset[T]:
        return frozenset(self._successors)

    def edges(self) -> list[tuple[T, T]]:
        """Return every edge, sorted for stable output."""
        return sorted(
            (
                (source, target)
                for source, targets in self._successors.items()
                for target in targets
            ),
            key=lambda edge: (self._sort_key(edge[0]), self._sort_key(edge[1])),
        )

    def subgraph(self, nodes: Iterable[T]) -> DirectedGraph[T]:
        """Return the subgraph induced by ``nodes``."""
        selected = set(nodes)
        self._require(*selected)
        induced: DirectedGraph[T] = DirectedGraph(sort_key=self._sort_key)
        for node in selected:
            induced.add_node(node)
        for node in selected:
            for successor in self._successors[node] & selected:
                induced.add_edge(node, successor)
        return induced

    def copy(self) -> DirectedGraph[T]:
        return self.subgraph(self._successors)

    def __contains__(self, node: object) -> bool:
        return node in self._successors

    def __len__(self) -> int:
        return len(self._successors)

    def __iter__(self) -> Iterator[T]:
        return iter(self._sorted(self._successors))

    def __repr__(self) -> str:
        edge_count = sum(len(targets) for targets in self._successors.values())
        return f"DirectedGraph(nodes={len(self)}, edges={edge_count})"

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def reachable_from(
        self, seeds: Iterable[T], direction: Direction = Direction.FORWARD
    ) -> frozenset[T]:
        """Return every node reachable from ``seeds``, seeds included.

        ``Direction.REVERSE`` walks predecessor links, which on a dependency
        graph yields the seeds plus all of their transitive prerequisites.
        """
        start = list(seeds)
        self._require(*start)
        adjacency = (
            self._successors if direction is Direction.FORWARD else self._predecessors
        )
        visited: set[T] = set(start)
        queue: deque[T] = deque(start)
        while queue:
            current = queue.popleft()
            for neighbour in adjacency[current]:
                if neighbour not in visited:
                    visited.add(neighbour)
                    queue.append(neighbour)
        return frozenset(visited)

    def transitive_closure(
        self, node: T, direction: Direction = Direction.FORWARD
    ) -> frozenset[T]:
        """Nodes reachable from ``node`` through at least one edge."""
        self._require(node)
        adjacency = (
            self._successors if direction is Direction.FORWARD else self._predecessors
        )
        first_hop = adjacency[node]
        if not first_hop:
            return frozenset()
        return self.reachable_from(first_hop, direction)

    def shortest_path(self, source: T, target: T) -> list[T]:
        """Return the shortest path ``source -> target`` or ``[]``."""
        self._require(source, target)
        if source == target:
            return [source]
        parents: dict[T, T] = {}
        visited: set[T] = {source}
        queue: deque[T] = deque([source])
        while queue:
            current = queue.popleft()
            for neighbour in self._sorted(self._successors[current]):
                if neighbour in visited:
                    continue
                visited.add(neighbour)
                parents[neighbour] = current
                if neighbour == target:
                    return self._unwind(parents, source, target)
                queue.append(neighbour)
        return []

    def all_paths(self, source: T, target: T) -> list[list[T]]:
        """Return every simple path ``source -> target``."""
        self._require(source, target)
        paths: list[list[T]] = []
        path: list[T] = [source]
        on_path: set[T] = {source}
        stack: list[Iterator[T]] = [iter(self._sorted(self._successors[source]))]
        if source == target:
            return [[source]]
        while stack:
            neighbour = next(stack[-1], _EXHAUSTED)
            if neighbour is _EXHAUSTED:
                stack.pop()
                on_path.discard(path.pop())
                continue
            if neighbour in on_path:
                continue
            if neighbour == target:
                paths.append([*path, neighbour])
                continue
            path.append(neighbour)
            on_path.add(neighbour)
            stack.append(iter(self._sorted(self._successors[neighbour])))
        return paths

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def strongly_connected_components(self) -> list[list[T]]:
        """Tarjan's algorithm, iterative; components in discovery order."""
        index_of: dict[T, int] = {}
        lowlink: dict[T, int] = {}
        on_stack: set[T] = set()
        stack: list[T] = []
        components: list[list[T]] = []
        counter = 0

        for root in self._sorted(self._successors):
            if root in index_of:
                continue
            work: list[tuple[T, Iterator[T]]] = [
                (root, iter(self._sorted(self._successors[root])))
            ]
            index_of[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            while work:
                node, children = work[-1]
                child = next(children, _EXHAUSTED)
                if child is not _EXHAUSTED:
                    if child not in index_of:
                        index_of[child] = lowlink[child] = counter
                        counter += 1
                        stack.append(child)
                        on_stack.add(child)
                        work.append(
                            (child, iter(self._sorted(self._successors[child])))
                        )
                    elif child in on_stack:
                        lowlink[node] = min(lowlink[node], index_of[child])
                    continue
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index_of[node]:
                    component: list[T] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    components.append(self._sorted(component))
        return components

    def detect_cycles(self) -> list[list[T]]:
        """Return one elementary cycle per cyclic strongly connected component.

        Each cycle follows edge direction and starts at the smallest node of
        its component; an acyclic graph yields ``[]``.
        """
        cycles: list[list[T]] = []
        for component in self.strongly_connected_components():
            start = component[0]
            if len(component) == 1 and start not in self._successors[start]:
                continue
            cycles.append(self._cycle_through(start, set(component)))
        cycles.sort(key=lambda cycle: self._sort_key(cycle[0]))
        return cycles

    def has_cycles(self) -> bool:
        return bool(self.detect_cycles())

    def _cycle_through(self, start: T, members: set[T]) -> list[T]:
        if start in self._successors[start]:
            return [start]
        parents: dict[T, T] = {}
        queue: deque[T] = deque([start])
        visited: set[T] = {start}
        while queue:
            current = queue.popleft()
            for neighbour in self._sorted(self._successors[current] & members):
                if neighbour == start:
                    cycle = [current]
                    while cycle[-1] != start:
                        cycle.append(parents[cycle[-1]])
                    cycle.reverse()
                    return cycle
                if neighbour not in visited:
                    visited.add(neighbour)
                    parents[neighbour] = current
                    queue.append(neighbour)
        raise AssertionError(f"{start!r} is not on a cycle")  # pragma: no cover

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def topological_sort(self, subset: Iterable[T] | None = None) -> list[T]:
        """Order ``subset`` (default: all nodes) with Kahn's algorithm.

        Edges with an endpoint outside ``subset`` are ignored. Among nodes
        that become available together the smallest by ``sort_key`` goes
        first.
        """
        selected = set(self._successors) if subset is None else set(subset)
        self._require(*selected)
        rank = {node: position for position, node in enumerate(self._sorted(selected))}
        in_degree = {
            node: len(self._predecessors[node] & selected) for node in selected
        }
        ready = [rank[node] for node, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        by_rank = {position: node for node, position in rank.items()}
        order: list[T] = []
        while ready:
            node = by_rank[heapq.heappop(ready)]
            order.append(node)
            for successor in self._successors[node] & selected:
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    heapq.heappush(ready, rank[successor])
        if len(order) != len(selected):
            remaining = selected.difference(order)
            cycles = self.subgraph(remaining).detect_cycles()
            raise CycleDetectedError(cycles[0] if cycles else self._sorted(remaining))
        return order

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _sorted(self, nodes: Iterable[T]) -> list[T]:
        return sorted(nodes, key=self._sort_key)

    def _require(self, *nodes: T) -> None:
        missing = [node for node in nodes if node not in self._successors]
        if missing:
            raise UnknownNodeError(missing)

    @staticmethod
    def _unwind(parents: dict[T, T], source: T, target: T) -> list[T]:
        path = [target]
        while path[-1] != source:
            path.append(parents[path[-1]])
        path.reverse()
        return path
