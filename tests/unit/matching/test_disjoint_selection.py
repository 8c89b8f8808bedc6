"""Tests for intent-disjoint proposal selection."""

import itertools
import random

import pytest

from swapgraph.matching.selection import (
    SCORE_SCALE,
    build_candidates,
    find_conflict_components,
    rank_candidates,
    select_disjoint_proposals,
    select_from_candidates,
    solve_component_exact,
    solve_component_greedy,
)
from swapgraph.models.proposal import SelectionReason
from swapgraph.valuation import AssetValuation
from tests.helpers import make_candidate, make_intent, prices_for


def selected_ids(result):
    return [proposal.id for proposal in result.selected]


def reasons(result):
    return {row.proposal_id: row.reason for row in result.trace}


def is_disjoint(candidates):
    seen: set[str] = set()
    for candidate in candidates:
        if not candidate.intent_set.isdisjoint(seen):
            return False
        seen.update(candidate.intent_ids)
    return True


def brute_force_best_total(candidates):
    best = 0
    for r in range(len(candidates) + 1):
        for subset in itertools.combinations(candidates, r):
            if is_disjoint(subset):
                best = max(best, sum(c.scaled_score for c in subset))
    return best


def random_candidates(rng, n_candidates, n_intents):
    intents = [f"i{k}" for k in range(n_intents)]
    candidates = []
    for idx in range(n_candidates):
        size = rng.choice([2, 3])
        members = rng.sample(intents, size)
        score = round(rng.uniform(0.3, 0.9), 4)
        candidates.append(make_candidate(members, score, f"p{idx:02d}"))
    return rank_candidates(candidates)


class TestRanking:
    def test_score_desc_then_id(self):
        ranked = rank_candidates(
            [
                make_candidate(["A", "B"], 0.7, "p_c"),
                make_candidate(["C", "D"], 0.8, "p_b"),
                make_candidate(["E", "F"], 0.8, "p_a"),
            ]
        )
        assert [c.proposal.id for c in ranked] == ["p_a", "p_b", "p_c"]


class TestConflictComponents:
    def test_components(self):
        candidates = [
            make_candidate(["A", "B"], 0.9, "x"),
            make_candidate(["C", "D"], 0.8, "y"),
            make_candidate(["B", "E"], 0.7, "z"),
            make_candidate(["E", "F"], 0.6, "w"),
        ]
        assert find_conflict_components(candidates) == [[0, 2, 3], [1]]

    def test_no_candidates(self):
        assert find_conflict_components([]) == []


class TestExactSolver:
    """Exact subset DP on small components."""

    def test_two_beat_one(self):
        """X(A,B)=.9 loses to Y(A,C)=.8 plus Z(B,D)=.8."""
        candidates = rank_candidates(
            [
                make_candidate(["A", "B"], 0.9, "X"),
                make_candidate(["A", "C"], 0.8, "Y"),
                make_candidate(["B", "D"], 0.8, "Z"),
            ]
        )
        picks = solve_component_exact(candidates)
        assert sorted(candidates[p].proposal.id for p in picks) == ["Y", "Z"]

    def test_greedy_takes_top_ranked(self):
        candidates = rank_candidates(
            [
                make_candidate(["A", "B"], 0.9, "X"),
                make_candidate(["A", "C"], 0.8, "Y"),
                make_candidate(["B", "D"], 0.8, "Z"),
            ]
        )
        picks = solve_component_greedy(candidates)
        assert [candidates[p].proposal.id for p in picks] == ["X"]

    def test_equal_score_tie_prefers_smaller_id(self):
        candidates = rank_candidates(
            [make_candidate(["A", "B"], 0.8, "p_b"), make_candidate(["B", "C"], 0.8, "p_a")]
        )
        picks = solve_component_exact(candidates)
        assert [candidates[p].proposal.id for p in picks] == ["p_a"]

    def test_equal_total_tie_uses_signature(self):
        """One 0.8 candidate against two disjoint 0.4s: the smaller signature wins."""
        candidates = rank_candidates(
            [
                make_candidate(["A", "B", "C"], 0.8, "z_single"),
                make_candidate(["A", "D"], 0.4, "a_left"),
                make_candidate(["B", "E"], 0.4, "b_right"),
            ]
        )
        picks = solve_component_exact(candidates)
        assert sorted(candidates[p].proposal.id for p in picks) == ["a_left", "b_right"]

    def test_equal_total_tie_single_wins_on_signature(self):
        candidates = rank_candidates(
            [
                make_candidate(["A", "B", "C"], 0.8, "a_single"),
                make_candidate(["A", "D"], 0.4, "m_left"),
                make_candidate(["B", "E"], 0.4, "n_right"),
            ]
        )
        picks = solve_component_exact(candidates)
        assert [candidates[p].proposal.id for p in picks] == ["a_single"]

    def test_empty(self):
        assert solve_component_exact([]) == []

    @pytest.mark.parametrize("seed", range(12))
    def test_matches_brute_force(self, seed):
        """The exact solver reaches the best conflict-free total."""
        rng = random.Random(seed)
        candidates = random_candidates(rng, n_candidates=rng.randint(4, 12), n_intents=8)

        result = select_from_candidates(candidates)

        chosen = [c for c in candidates if c.proposal.id in set(selected_ids(result))]
        assert is_disjoint(chosen)
        assert sum(c.scaled_score for c in chosen) == brute_force_best_total(candidates)

    def test_deterministic(self):
        rng = random.Random(7)
        candidates = random_candidates(rng, n_candidates=14, n_intents=9)
        first = select_from_candidates(candidates)
        second = select_from_candidates(list(candidates))
        assert selected_ids(first) == selected_ids(second)
        assert first.trace == second.trace


class TestSelectFromCandidates:
    """Trace rows and component routing."""

    def test_exact_component_trace(self):
        candidates = rank_candidates(
            [
                make_candidate(["A", "B"], 0.9, "X"),
                make_candidate(["A", "C"], 0.8, "Y"),
                make_candidate(["B", "D"], 0.8, "Z"),
            ]
        )
        result = select_from_candidates(candidates)

        assert selected_ids(result) == ["Y", "Z"]
        assert reasons(result) == {
            "X": SelectionReason.CONFLICT_SHARED_INTENT,
            "Y": SelectionReason.PICKED,
            "Z": SelectionReason.PICKED,
        }
        assert [row.proposal_id for row in result.trace] == ["X", "Y", "Z"]
        assert result.exact_components == 1
        assert result.greedy_components == 0

    def test_greedy_fallback_above_limit(self):
        candidates = rank_candidates(
            [
                make_candidate(["A", "B"], 0.9, "X"),
                make_candidate(["A", "C"], 0.8, "Y"),
                make_candidate(["B", "D"], 0.8, "Z"),
            ]
        )
        result = select_from_candidates(candidates, exact_component_limit=2)

        assert selected_ids(result) == ["X"]
        assert reasons(result)["Y"] == SelectionReason.CONFLICT_SHARED_INTENT
        assert result.greedy_components == 1

    def test_singletons_always_picked(self):
        candidates = rank_candidates(
            [make_candidate(["A", "B"], 0.5, "X"), make_candidate(["C", "D"], 0.6, "Y")]
        )
        result = select_from_candidates(candidates, exact_component_limit=0)
        assert selected_ids(result) == ["Y", "X"]
        assert result.components == 2

    def test_zero_score_candidate_left_out(self):
        """A zero-score candidate adds nothing, so the optimizer leaves it out."""
        candidates = rank_candidates(
            [make_candidate(["A", "B"], 0.5, "X"), make_candidate(["C", "D"], 0.0, "Y")]
        )
        result = select_from_candidates(candidates)
        assert selected_ids(result) == ["X"]
        assert reasons(result)["Y"] == SelectionReason.NOT_SELECTED_OPTIMIZER

    def test_max_proposals_truncates(self):
        candidates = rank_candidates(
            [
                make_candidate(["A", "B"], 0.9, "X"),
                make_candidate(["C", "D"], 0.8, "Y"),
                make_candidate(["E", "F"], 0.7, "Z"),
            ]
        )
        result = select_from_candidates(candidates, max_proposals=2)
        assert selected_ids(result) == ["X", "Y"]
        assert reasons(result)["Z"] == SelectionReason.NOT_SELECTED_OPTIMIZER
        assert not result.trace[2].selected

    def test_large_component_uses_greedy(self):
        """A 20-candidate star around one shared intent exceeds the exact limit."""
        candidates = rank_candidates(
            [make_candidate(["hub", f"leaf{k:02d}"], 0.5 + k / 100, f"p{k:02d}") for k in range(20)]
        )
        result = select_from_candidates(candidates)
        assert result.greedy_components == 1
        assert selected_ids(result) == ["p19"]

    def test_scaled_score(self):
        assert make_candidate(["A", "B"], 0.12345, "X").scaled_score == round(0.12345 * SCORE_SCALE)


class TestSelectDisjointProposals:
    """End-to-end over real intents."""

    def test_overlapping_rings(self, overlapping_rings):
        valuation = AssetValuation(prices_for(overlapping_rings))
        by_id = {intent.id: intent for intent in overlapping_rings}
        cycles = [("A", "B", "C"), ("B", "D", "E")]

        result = select_disjoint_proposals(cycles, by_id, valuation)

        assert result.candidates_count == 2
        assert len(result.selected) == 1
        assert sorted(row.reason for row in result.trace) == sorted(
            [SelectionReason.PICKED, SelectionReason.CONFLICT_SHARED_INTENT]
        )

    def test_rejected_cycles_dropped(self):
        intents = [
            make_intent("A", offers="a", max_cycle_length=2),
            make_intent("B", offers="b"),
            make_intent("C", offers="c"),
        ]
        by_id = {intent.id: intent for intent in intents}
        valuation = AssetValuation(prices_for(intents))

        candidates = build_candidates([("A", "B", "C"), ("B", "C")], by_id, valuation)

        assert [c.intent_ids for c in candidates] == [("B", "C")]
