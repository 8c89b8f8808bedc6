"""Matching pipeline: compatibility graph, cycle enumeration, proposals, selection."""

from swapgraph.matching.config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from swapgraph.matching.cycles import (
    CycleDiagnostics,
    CycleEnumeration,
    canonical_rotation,
    find_bounded_simple_cycles,
    strongly_connected_components,
)
from swapgraph.matching.graph import (
    CompatibilityGraph,
    EdgeMeta,
    UnionFind,
    build_compatibility_graph,
    build_explicit_edge_map,
    is_intent_eligible,
)
from swapgraph.matching.proposals import (
    ProposalBuildResult,
    RejectReason,
    build_proposal,
    cycle_proposal_id,
)
from swapgraph.matching.scoring import (
    base_confidence,
    compute_value_spread,
    round_half_up,
    score_cycle,
)
from swapgraph.matching.selection import (
    EXACT_COMPONENT_LIMIT,
    Candidate,
    SelectionResult,
    build_candidates,
    find_conflict_components,
    select_disjoint_proposals,
    select_from_candidates,
    solve_component_exact,
    solve_component_greedy,
)
from swapgraph.matching.want_spec import offer_satisfies_want_spec

__all__ = [
    # Config
    "DEFAULT_MATCHING_CONFIG",
    "MatchingConfig",
    # Graph
    "CompatibilityGraph",
    "EdgeMeta",
    "UnionFind",
    "build_compatibility_graph",
    "build_explicit_edge_map",
    "is_intent_eligible",
    "offer_satisfies_want_spec",
    # Cycles
    "CycleDiagnostics",
    "CycleEnumeration",
    "canonical_rotation",
    "find_bounded_simple_cycles",
    "strongly_connected_components",
    # Proposals and scoring
    "ProposalBuildResult",
    "RejectReason",
    "base_confidence",
    "build_proposal",
    "compute_value_spread",
    "cycle_proposal_id",
    "round_half_up",
    "score_cycle",
    # Selection
    "EXACT_COMPONENT_LIMIT",
    "Candidate",
    "SelectionResult",
    "build_candidates",
    "find_conflict_components",
    "select_disjoint_proposals",
    "select_from_candidates",
    "solve_component_exact",
    "solve_component_greedy",
]
