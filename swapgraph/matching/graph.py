"""Compatibility graph over swap intents.

Nodes are active intents. `edges[a]` lists every intent `b` whose offer can
satisfy `a`'s want spec within `a`'s value band, i.e. `a` can receive from
`b`. Explicit edge intents can add (allow/prefer) or remove (block) pairs,
and prefer edges carry a strength used as a scoring bonus.

This module provides:
- UnionFind: connected component detection (used by the selector)
- EdgeMeta / CompatibilityGraph: the graph and its per-edge metadata
- build_explicit_edge_map / build_compatibility_graph
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from swapgraph.matching.want_spec import offer_satisfies_want_spec
from swapgraph.models.intent import EdgeIntent, EdgeIntentType, IntentStatus, SwapIntent
from swapgraph.models.types import edge_key, parse_iso_timestamp
from swapgraph.valuation import AssetValuation, MissingAssetValueError

logger = structlog.get_logger()


class UnionFind:
    """Union-Find data structure for efficient connected component detection.

    Uses path compression and union by rank for O(α(n)) amortized operations,
    where α is the inverse Ackermann function (effectively constant).
    """

    def __init__(self) -> None:
        """Initialize empty Union-Find structure."""
        self._parent: dict[Hashable, Hashable] = {}
        self._rank: dict[Hashable, int] = {}

    def find(self, x: Hashable) -> Hashable:
        """Find the root of element x with path compression."""
        if x not in self._parent:
            self._parent[x] = x
            self._rank[x] = 0
            return x

        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        # Path compression: make all nodes on the path point directly to root
        while self._parent[x] != root:
            self._parent[x], x = root, self._parent[x]
        return root

    def union(self, x: Hashable, y: Hashable) -> None:
        """Union the sets containing x and y using rank."""
        root_x = self.find(x)
        root_y = self.find(y)

        if root_x == root_y:
            return

        # Union by rank: attach smaller tree under larger
        if self._rank[root_x] < self._rank[root_y]:
            self._parent[root_x] = root_y
        elif self._rank[root_x] > self._rank[root_y]:
            self._parent[root_y] = root_x
        else:
            self._parent[root_y] = root_x
            self._rank[root_x] += 1

    def connected(self, x: Hashable, y: Hashable) -> bool:
        """Check if x and y are in the same component."""
        return self.find(x) == self.find(y)


@dataclass(frozen=True)
class EdgeMeta:
    """How a compatibility edge came to exist.

    Attributes:
        source_intent_id: Receiving intent
        target_intent_id: Providing intent
        derived: Offer satisfies the want spec and value band
        explicit_allow: An allow or prefer edge intent admits the pair
        explicit_prefer_strength: Strongest prefer edge for the pair, in [0, 1]
        origin: "derived", "explicit" or "hybrid"
    """

    source_intent_id: str
    target_intent_id: str
    derived: bool
    explicit_allow: bool
    explicit_prefer_strength: float = 0.0

    @property
    def origin(self) -> str:
        if self.derived and self.explicit_allow:
            return "hybrid"
        return "derived" if self.derived else "explicit"


@dataclass
class ExplicitEdge:
    """Accumulated explicit statements about one directed pair."""

    allow: bool = False
    block: bool = False
    prefer_strength: float = 0.0


@dataclass
class CompatibilityGraph:
    """Directed compatibility graph for one matching run.

    Built once per run and treated as read-only afterwards.
    """

    # intent id -> intent (active intents only)
    by_id: dict[str, SwapIntent] = field(default_factory=dict)
    # intent id -> ids of intents it can receive from
    edges: dict[str, list[str]] = field(default_factory=dict)
    # "a>b" -> edge metadata
    edge_meta: dict[str, EdgeMeta] = field(default_factory=dict)

    @property
    def intent_count(self) -> int:
        return len(self.by_id)

    @property
    def edge_count(self) -> int:
        """Count directed edges."""
        return sum(len(neighbors) for neighbors in self.edges.values())

    def has_edge(self, source_intent_id: str, target_intent_id: str) -> bool:
        return edge_key(source_intent_id, target_intent_id) in self.edge_meta

    def prefer_strength(self, source_intent_id: str, target_intent_id: str) -> float:
        """Explicit prefer strength of an edge (0 when absent)."""
        meta = self.edge_meta.get(edge_key(source_intent_id, target_intent_id))
        return meta.explicit_prefer_strength if meta is not None else 0.0


def _resolve_now(now_iso: str | None) -> datetime:
    return parse_iso_timestamp(now_iso) or datetime.now(UTC)


def is_intent_eligible(intent: SwapIntent, now: datetime) -> bool:
    """Check whether an intent takes part in matching at `now`.

    Eligible means active and not yet expired. Never raises for a validated
    intent.
    """
    if intent.status != IntentStatus.ACTIVE.value:
        return False
    expires_at = parse_iso_timestamp(intent.time_constraints.expires_at)
    return expires_at is None or expires_at > now


def build_explicit_edge_map(
    edge_intents: Iterable[EdgeIntent],
    now: datetime,
) -> dict[str, ExplicitEdge]:
    """Fold edge intents into one ExplicitEdge per directed pair.

    Rows that are inactive, expired, self-referencing or of unknown type are
    ignored. Prefer implies allow; prefer strength defaults to 1, is clamped
    to [0, 1], and the strongest row wins.
    """
    out: dict[str, ExplicitEdge] = {}
    known_types = {t.value for t in EdgeIntentType}

    for row in edge_intents:
        source = row.source_intent_id.strip()
        target = row.target_intent_id.strip()
        intent_type = row.intent_type.strip().lower()
        status = (row.status or "active").strip().lower()

        if not source or not target or source == target:
            continue
        if status != "active":
            continue
        expires_at = parse_iso_timestamp(row.expires_at)
        if expires_at is not None and expires_at <= now:
            continue
        if intent_type not in known_types:
            continue

        existing = out.setdefault(edge_key(source, target), ExplicitEdge())
        if intent_type == EdgeIntentType.BLOCK.value:
            existing.block = True
        elif intent_type == EdgeIntentType.ALLOW.value:
            existing.allow = True
        else:
            strength = 1.0 if row.strength is None else min(1.0, max(0.0, row.strength))
            existing.allow = True
            existing.prefer_strength = max(existing.prefer_strength, strength)

    return out


def _is_derived(
    receiver: SwapIntent,
    provider: SwapIntent,
    valuation: AssetValuation,
) -> bool:
    if not offer_satisfies_want_spec(receiver.want_spec, provider.offer):
        return False
    band = receiver.value_band
    if band.min_usd is None and band.max_usd is None:
        return True
    try:
        get_value = valuation.value_of_assets(provider.offer)
    except MissingAssetValueError:
        # Unpriced offers cannot be checked against the band here; pricing
        # errors surface when a cycle containing the pair is scored.
        return False
    return receiver.value_band.contains(get_value)


def build_compatibility_graph(
    intents: Iterable[SwapIntent],
    valuation: AssetValuation,
    edge_intents: Iterable[EdgeIntent] = (),
    now_iso: str | None = None,
) -> CompatibilityGraph:
    """Build the compatibility graph for one run.

    Args:
        intents: All intents handed to the run (ineligible ones are skipped)
        valuation: Asset valuation used for value band checks
        edge_intents: Explicit allow/prefer/block rows
        now_iso: Evaluation time for expiry checks (defaults to now)

    Returns:
        CompatibilityGraph over the eligible intents
    """
    now = _resolve_now(now_iso)
    intents = list(intents)

    graph = CompatibilityGraph()
    for intent in intents:
        if not is_intent_eligible(intent, now):
            continue
        if intent.id in graph.by_id:
            logger.warning("duplicate_intent_id", intent_id=intent.id)
        graph.by_id[intent.id] = intent

    explicit = build_explicit_edge_map(edge_intents, now)
    active = list(graph.by_id.values())

    for receiver in active:
        neighbors: list[str] = []
        for provider in active:
            if receiver.id == provider.id:
                continue
            key = edge_key(receiver.id, provider.id)
            explicit_edge = explicit.get(key)

            if explicit_edge is not None and explicit_edge.block:
                continue

            derived = _is_derived(receiver, provider, valuation)
            allowed = explicit_edge is not None and explicit_edge.allow
            if not derived and not allowed:
                continue

            neighbors.append(provider.id)
            graph.edge_meta[key] = EdgeMeta(
                source_intent_id=receiver.id,
                target_intent_id=provider.id,
                derived=derived,
                explicit_allow=allowed,
                explicit_prefer_strength=explicit_edge.prefer_strength if explicit_edge else 0.0,
            )
        graph.edges[receiver.id] = neighbors

    logger.debug(
        "compatibility_graph_built",
        intents_total=len(intents),
        intents_active=graph.intent_count,
        edges=graph.edge_count,
        explicit_pairs=len(explicit),
    )
    return graph


__all__ = [
    "CompatibilityGraph",
    "EdgeMeta",
    "ExplicitEdge",
    "UnionFind",
    "build_compatibility_graph",
    "build_explicit_edge_map",
    "is_intent_eligible",
]
