"""Bounded simple-cycle enumeration over the compatibility graph.

A cycle [i0, i1, ..., iL-1] means each intent receives the offer of the
next one (i(L-1) receives from i0). Enumeration is exhaustive within the
length bounds but protected by two safety valves, since the number of
simple cycles grows combinatorially with graph density and cycle length:

- max_enumerated_cycles: stop once this many cycles were found
- timeout_ms: stop once the wall-clock budget is spent (checked between
  search steps, not preemptively)

Cycles found before a valve trips are kept and returned; the diagnostics
are the only way to tell a cut-short search from a complete one.

Algorithm:
1. Normalize the edge map (sorted ids, no self loops, no dangling targets)
2. Keep only strongly connected components with more than one node
3. From each start node (in sorted order), DFS over nodes that sort after
   it, so every directed cycle is found once, led by its smallest id
"""

from __future__ import annotations

import math
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import structlog

from swapgraph.models.types import cycle_key

logger = structlog.get_logger()

DEFAULT_MIN_CYCLE_LENGTH = 2
DEFAULT_MAX_CYCLE_LENGTH = 3

Cycle = tuple[str, ...]


@dataclass
class CycleDiagnostics:
    """Safety valve state of one enumeration."""

    max_cycles_reached: bool = False
    timeout_reached: bool = False
    max_enumerated_cycles: int | None = None
    timeout_ms: int | None = None

    @property
    def limited(self) -> bool:
        """True if either valve cut the search short."""
        return self.max_cycles_reached or self.timeout_reached


@dataclass
class CycleEnumeration:
    """Cycles found by one enumeration, plus its diagnostics."""

    cycles: list[Cycle] = field(default_factory=list)
    diagnostics: CycleDiagnostics = field(default_factory=CycleDiagnostics)


def _parse_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None


def normalize_bounds(min_cycle_length: object, max_cycle_length: object) -> tuple[int, int]:
    """Clamp length bounds: min >= 2 and max >= min."""
    min_len = _parse_int(min_cycle_length)
    max_len = _parse_int(max_cycle_length)
    min_len = max(2, DEFAULT_MIN_CYCLE_LENGTH if min_len is None else min_len)
    max_len = max(min_len, DEFAULT_MAX_CYCLE_LENGTH if max_len is None else max_len)
    return min_len, max_len


def normalize_cycle_limit(max_enumerated_cycles: object) -> float:
    """Cycle cap, at least 1; unlimited (inf) when unset."""
    n = _parse_int(max_enumerated_cycles)
    if n is None:
        return math.inf
    return max(1, n)


def normalize_timeout(timeout_ms: object) -> int | None:
    """Timeout budget in ms; None when unset or below 1."""
    n = _parse_int(timeout_ms)
    if n is None or n < 1:
        return None
    return n


def canonical_rotation(intent_ids: Iterable[str]) -> Cycle:
    """Rotate a directed cycle so its smallest id comes first."""
    ids = list(intent_ids)
    if not ids:
        return ()
    idx = ids.index(min(ids))
    return tuple(ids[idx:] + ids[:idx])


def normalize_graph(edges: Mapping[str, Iterable[str]]) -> tuple[list[str], dict[str, list[str]]]:
    """Sorted node list and sorted, deduplicated adjacency without self loops."""
    nodes = sorted(str(node) for node in edges)
    known = set(nodes)
    adjacency: dict[str, list[str]] = {}
    for node in nodes:
        neighbors = {str(n) for n in edges.get(node, ())}
        adjacency[node] = sorted(n for n in neighbors if n in known and n != node)
    return nodes, adjacency


def strongly_connected_components(
    nodes: list[str],
    adjacency: Mapping[str, list[str]],
) -> list[list[str]]:
    """Tarjan's SCC algorithm, iterative so deep graphs do not hit the recursion limit.

    Returns:
        Components with sorted members, in Tarjan completion order
    """
    index_of: dict[str, int] = {}
    low: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    components: list[list[str]] = []
    counter = 0

    for root in nodes:
        if root in index_of:
            continue

        index_of[root] = low[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work = [(root, iter(adjacency.get(root, ())))]

        while work:
            v, neighbors = work[-1]
            descended = False
            for w in neighbors:
                if w not in index_of:
                    index_of[w] = low[w] = counter
                    counter += 1
                    stack.append(w)
                    on_stack.add(w)
                    work.append((w, iter(adjacency.get(w, ()))))
                    descended = True
                    break
                if w in on_stack:
                    low[v] = min(low[v], index_of[w])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[v])

            if low[v] == index_of[v]:
                component: list[str] = []
                while True:
                    w = stack.pop()
                    on_stack.discard(w)
                    component.append(w)
                    if w == v:
                        break
                component.sort()
                components.append(component)

    return components


class _BoundedCycleSearch:
    """Per-call search state (path, seen cycles, valves). Never shared."""

    def __init__(
        self,
        adjacency: Mapping[str, list[str]],
        order: Mapping[str, int],
        min_len: int,
        max_len: int,
        max_cycles: float,
        deadline: float | None,
        diagnostics: CycleDiagnostics,
    ) -> None:
        self.adjacency = adjacency
        self.order = order
        self.min_len = min_len
        self.max_len = max_len
        self.max_cycles = max_cycles
        self.deadline = deadline
        self.diagnostics = diagnostics
        self.cycles: list[Cycle] = []
        self._seen: set[Cycle] = set()

    def should_stop(self) -> bool:
        if len(self.cycles) >= self.max_cycles:
            self.diagnostics.max_cycles_reached = True
            return True
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.diagnostics.timeout_reached = True
            return True
        return False

    def _add_cycle(self, path: list[str]) -> bool:
        """Record a cycle; returns False once the search must stop."""
        canonical = canonical_rotation(path)
        if canonical not in self._seen:
            self._seen.add(canonical)
            self.cycles.append(canonical)
        return not self.should_stop()

    def search_from(self, start: str, members: set[str]) -> None:
        """Enumerate cycles whose smallest node is `start`."""
        start_order = self.order[start]
        path = [start]
        on_path = {start}

        def dfs(v: str) -> bool:
            for w in self.adjacency.get(v, ()):
                if self.should_stop():
                    return False
                if w not in members or self.order[w] < start_order:
                    continue

                if w == start:
                    if self.min_len <= len(path) <= self.max_len and not self._add_cycle(path):
                        return False
                    continue

                if len(path) >= self.max_len or w in on_path:
                    continue

                path.append(w)
                on_path.add(w)
                keep_going = dfs(w)
                on_path.discard(w)
                path.pop()
                if not keep_going:
                    return False
            return True

        dfs(start)


def find_bounded_simple_cycles(
    edges: Mapping[str, Iterable[str]],
    min_cycle_length: int | None = DEFAULT_MIN_CYCLE_LENGTH,
    max_cycle_length: int | None = DEFAULT_MAX_CYCLE_LENGTH,
    max_enumerated_cycles: int | None = None,
    timeout_ms: int | None = None,
) -> CycleEnumeration:
    """Enumerate simple directed cycles with length in [min, max].

    Args:
        edges: intent id -> ids it can receive from
        min_cycle_length: Minimum cycle length (clamped to >= 2)
        max_cycle_length: Maximum cycle length (clamped to >= min)
        max_enumerated_cycles: Stop after this many cycles (None = unlimited)
        timeout_ms: Stop after this many milliseconds (None = unlimited)

    Returns:
        CycleEnumeration with cycles sorted by (length, joined ids) and
        diagnostics describing whether a safety valve tripped
    """
    min_len, max_len = normalize_bounds(min_cycle_length, max_cycle_length)
    max_cycles = normalize_cycle_limit(max_enumerated_cycles)
    timeout_budget_ms = normalize_timeout(timeout_ms)
    deadline = (
        time.monotonic() + timeout_budget_ms / 1000 if timeout_budget_ms is not None else None
    )

    diagnostics = CycleDiagnostics(
        max_enumerated_cycles=None if math.isinf(max_cycles) else int(max_cycles),
        timeout_ms=timeout_budget_ms,
    )

    nodes, adjacency = normalize_graph(edges)
    order = {node: idx for idx, node in enumerate(nodes)}

    sccs = [c for c in strongly_connected_components(nodes, adjacency) if len(c) > 1]
    sccs.sort(key=lambda component: min(order[node] for node in component))

    search = _BoundedCycleSearch(
        adjacency=adjacency,
        order=order,
        min_len=min_len,
        max_len=max_len,
        max_cycles=max_cycles,
        deadline=deadline,
        diagnostics=diagnostics,
    )

    for component in sccs:
        if search.should_stop():
            break
        members = set(component)
        for start in component:
            if search.should_stop():
                break
            search.search_from(start, members)

    cycles = sorted(search.cycles, key=lambda c: (len(c), cycle_key(c)))

    if diagnostics.limited:
        logger.warning(
            "cycle_enumeration_limited",
            cycles=len(cycles),
            max_cycles_reached=diagnostics.max_cycles_reached,
            timeout_reached=diagnostics.timeout_reached,
            max_enumerated_cycles=diagnostics.max_enumerated_cycles,
            timeout_ms=diagnostics.timeout_ms,
        )
    logger.debug(
        "cycles_enumerated",
        nodes=len(nodes),
        components=len(sccs),
        cycles=len(cycles),
        min_cycle_length=min_len,
        max_cycle_length=max_len,
    )

    return CycleEnumeration(cycles=cycles, diagnostics=diagnostics)


__all__ = [
    "Cycle",
    "CycleDiagnostics",
    "CycleEnumeration",
    "DEFAULT_MAX_CYCLE_LENGTH",
    "DEFAULT_MIN_CYCLE_LENGTH",
    "canonical_rotation",
    "find_bounded_simple_cycles",
    "normalize_bounds",
    "normalize_cycle_limit",
    "normalize_graph",
    "normalize_timeout",
    "strongly_connected_components",
]
