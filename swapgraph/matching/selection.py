"""Selecting a maximum-score set of intent-disjoint proposals.

No intent may be promised to two proposals at once, so candidates that
share an intent conflict. Picking the best conflict-free subset is a
maximum-weight independent set problem (NP-hard in general), but conflict
graphs of real runs split into many small independent components:

1. Build all candidate proposals (rejected cycles are dropped silently)
2. Rank by confidence desc, proposal id asc (the only ordering used later)
3. Union candidates sharing an intent into conflict components
4. Solve each component:
   - <= exact_component_limit candidates: exact subset DP over bitmasks,
     weights scaled to integers, ties broken by the sorted proposal-id
     signature so the optimum is unique
   - larger: greedy pass in ranking order
5. Union the picks and emit one trace row per candidate
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

import structlog

from swapgraph.matching.graph import EdgeMeta, UnionFind
from swapgraph.matching.proposals import DEFAULT_FEE_RATE, build_proposal
from swapgraph.models.intent import SwapIntent
from swapgraph.models.proposal import CycleProposal, SelectionReason, SelectionTraceEntry
from swapgraph.valuation import AssetValuation

logger = structlog.get_logger()

# Largest conflict component solved exactly (2^18 masks worst case)
EXACT_COMPONENT_LIMIT = 18

# Scores are compared as integers: score * SCORE_SCALE
SCORE_SCALE = 10_000


@dataclass(frozen=True)
class Candidate:
    """A cycle paired with its built proposal and selection weight."""

    intent_ids: tuple[str, ...]
    proposal: CycleProposal
    score: float
    length: int

    @property
    def scaled_score(self) -> int:
        return round(self.score * SCORE_SCALE)

    @property
    def intent_set(self) -> frozenset[str]:
        return frozenset(self.intent_ids)

    def conflicts_with(self, other: Candidate) -> bool:
        return not self.intent_set.isdisjoint(other.intent_ids)


@dataclass
class SelectionResult:
    """Selected proposals plus an audit trail.

    Attributes:
        selected: Chosen proposals, in ranking order
        trace: One row per candidate, in ranking order
        candidates_count: Number of buildable candidates
        components: Number of conflict components
        exact_components: Components solved by the exact DP
        greedy_components: Components solved greedily
    """

    selected: list[CycleProposal] = field(default_factory=list)
    trace: list[SelectionTraceEntry] = field(default_factory=list)
    candidates_count: int = 0
    components: int = 0
    exact_components: int = 0
    greedy_components: int = 0


def rank_candidates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Sort by score desc, proposal id asc."""
    return sorted(candidates, key=lambda c: (-c.score, c.proposal.id))


def build_candidates(
    candidate_cycles: Iterable[Sequence[str]],
    by_id: Mapping[str, SwapIntent],
    valuation: AssetValuation,
    edge_meta: Mapping[str, EdgeMeta] | None = None,
    fee_rate: float = DEFAULT_FEE_RATE,
) -> list[Candidate]:
    """Build and rank candidate proposals; cycles that fail to build are dropped.

    Raises:
        MissingAssetValueError: If a cycle touches an unpriced asset
    """
    candidates: list[Candidate] = []
    for cycle in candidate_cycles:
        built = build_proposal(cycle, by_id, valuation, edge_meta=edge_meta, fee_rate=fee_rate)
        if not built.ok or built.proposal is None:
            continue
        candidates.append(
            Candidate(
                intent_ids=tuple(cycle),
                proposal=built.proposal,
                score=built.proposal.confidence_score,
                length=len(cycle),
            )
        )
    return rank_candidates(candidates)


def find_conflict_components(candidates: Sequence[Candidate]) -> list[list[int]]:
    """Group candidate indices that (transitively) share intents.

    Returns:
        Components as ascending index lists, ordered by their first index
    """
    intent_to_candidates: dict[str, list[int]] = defaultdict(list)
    for idx, candidate in enumerate(candidates):
        for intent_id in candidate.intent_set:
            intent_to_candidates[intent_id].append(idx)

    uf = UnionFind()
    for idx in range(len(candidates)):
        uf.find(idx)
    for indices in intent_to_candidates.values():
        first = indices[0]
        for other in indices[1:]:
            uf.union(first, other)

    components: dict[object, list[int]] = defaultdict(list)
    for idx in range(len(candidates)):
        components[uf.find(idx)].append(idx)

    return sorted(components.values(), key=lambda indices: indices[0])


def _conflict_masks(candidates: Sequence[Candidate]) -> list[int]:
    masks = [0] * len(candidates)
    for i in range(len(candidates)):
        for j in range(i + 1, len(candidates)):
            if candidates[i].conflicts_with(candidates[j]):
                masks[i] |= 1 << j
                masks[j] |= 1 << i
    return masks


def solve_component_exact(candidates: Sequence[Candidate]) -> list[int]:
    """Maximum-weight conflict-free subset by memoized subset DP.

    For the lowest candidate left in the mask, compare taking it (its
    weight plus the best of the mask without its conflicts) against skipping
    it. Equal totals prefer the lexically smaller "|"-joined sorted
    proposal-id signature.

    Args:
        candidates: One component's candidates, in ranking order

    Returns:
        Ascending indices (into `candidates`) of the chosen subset
    """
    n = len(candidates)
    if n == 0:
        return []

    weights = [c.scaled_score for c in candidates]
    conflicts = _conflict_masks(candidates)
    ids = [c.proposal.id for c in candidates]

    # mask -> (total, signature, picks); scoped to this call
    memo: dict[int, tuple[int, str, tuple[int, ...]]] = {0: (0, "", ())}

    def best(mask: int) -> tuple[int, str, tuple[int, ...]]:
        cached = memo.get(mask)
        if cached is not None:
            return cached

        i = (mask & -mask).bit_length() - 1
        bit = 1 << i

        skip = best(mask & ~bit)

        rest = best(mask & ~bit & ~conflicts[i])
        picks = tuple(sorted((i, *rest[2])))
        take = (rest[0] + weights[i], "|".join(sorted(ids[p] for p in picks)), picks)

        if take[0] > skip[0] or (take[0] == skip[0] and take[1] < skip[1]):
            result = take
        else:
            result = skip
        memo[mask] = result
        return result

    return list(best((1 << n) - 1)[2])


def solve_component_greedy(candidates: Sequence[Candidate]) -> list[int]:
    """Take each candidate, in ranking order, unless it conflicts with a pick."""
    used: set[str] = set()
    picks: list[int] = []
    for idx, candidate in enumerate(candidates):
        if not candidate.intent_set.isdisjoint(used):
            continue
        picks.append(idx)
        used.update(candidate.intent_ids)
    return picks


def select_from_candidates(
    candidates: Sequence[Candidate],
    exact_component_limit: int = EXACT_COMPONENT_LIMIT,
    max_proposals: int | None = None,
) -> SelectionResult:
    """Select disjoint proposals from ranked candidates.

    Args:
        candidates: Candidates in ranking order (see rank_candidates)
        exact_component_limit: Largest component solved exactly
        max_proposals: Keep at most this many picks (in ranking order)

    Returns:
        SelectionResult
    """
    result = SelectionResult(candidates_count=len(candidates))
    components = find_conflict_components(candidates)
    result.components = len(components)

    chosen: set[int] = set()
    for component in components:
        members = [candidates[idx] for idx in component]
        if len(members) <= exact_component_limit:
            local_picks = solve_component_exact(members)
            result.exact_components += 1
            method = "exact"
        else:
            local_picks = solve_component_greedy(members)
            result.greedy_components += 1
            method = "greedy"
        chosen.update(component[p] for p in local_picks)

        if len(members) > 1:
            logger.debug(
                "component_solved",
                method=method,
                size=len(members),
                picked=len(local_picks),
                total_score_scaled=sum(members[p].scaled_score for p in local_picks),
            )

    selected_indices = sorted(chosen)
    if max_proposals is not None and len(selected_indices) > max_proposals:
        selected_indices = selected_indices[:max_proposals]
    selected_set = set(selected_indices)

    used_intents: set[str] = set()
    for idx in selected_indices:
        used_intents.update(candidates[idx].intent_ids)

    for idx, candidate in enumerate(candidates):
        if idx in selected_set:
            selected, reason = True, SelectionReason.PICKED
        elif not candidate.intent_set.isdisjoint(used_intents):
            selected, reason = False, SelectionReason.CONFLICT_SHARED_INTENT
        else:
            selected, reason = False, SelectionReason.NOT_SELECTED_OPTIMIZER
        result.trace.append(
            SelectionTraceEntry(
                cycle=list(candidate.intent_ids),
                proposal_id=candidate.proposal.id,
                score=candidate.score,
                selected=selected,
                reason=reason,
            )
        )

    result.selected = [candidates[idx].proposal for idx in selected_indices]
    return result


def select_disjoint_proposals(
    candidate_cycles: Iterable[Sequence[str]],
    by_id: Mapping[str, SwapIntent],
    valuation: AssetValuation,
    edge_meta: Mapping[str, EdgeMeta] | None = None,
    fee_rate: float = DEFAULT_FEE_RATE,
    exact_component_limit: int = EXACT_COMPONENT_LIMIT,
    max_proposals: int | None = None,
) -> SelectionResult:
    """Build proposals for all cycles and select an intent-disjoint subset.

    Raises:
        MissingAssetValueError: If a cycle touches an unpriced asset
    """
    candidates = build_candidates(
        candidate_cycles, by_id, valuation, edge_meta=edge_meta, fee_rate=fee_rate
    )
    result = select_from_candidates(
        candidates,
        exact_component_limit=exact_component_limit,
        max_proposals=max_proposals,
    )

    logger.debug(
        "disjoint_selection_done",
        candidates=result.candidates_count,
        selected=len(result.selected),
        components=result.components,
        exact_components=result.exact_components,
        greedy_components=result.greedy_components,
    )
    return result


__all__ = [
    "Candidate",
    "EXACT_COMPONENT_LIMIT",
    "SCORE_SCALE",
    "SelectionResult",
    "build_candidates",
    "find_conflict_components",
    "rank_candidates",
    "select_disjoint_proposals",
    "select_from_candidates",
    "solve_component_exact",
    "solve_component_greedy",
]
