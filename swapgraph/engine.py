"""Matching engine: the single entry point of a matching run.

A run is a pure function of its inputs:

    intents -> compatibility graph -> bounded cycles -> proposals -> disjoint selection

Every run builds its own graph, search state and DP memo, so one engine can
serve concurrent runs (e.g. one per tenant) without sharing anything.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from typing import Any

import structlog

from swapgraph.matching.config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from swapgraph.matching.cycles import find_bounded_simple_cycles
from swapgraph.matching.graph import build_compatibility_graph
from swapgraph.matching.selection import select_disjoint_proposals
from swapgraph.models.proposal import MatchingRequest, MatchingResult, MatchingStats
from swapgraph.models.types import utc_now_iso
from swapgraph.valuation import MissingAssetValueError, merge_asset_values

logger = structlog.get_logger()


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


class MatchingEngine:
    """Runs matching passes with a fixed configuration.

    Args:
        config: Defaults for fields a request leaves unset.
    """

    def __init__(self, config: MatchingConfig | None = None) -> None:
        self.config = config or DEFAULT_MATCHING_CONFIG

    def run(self, request: MatchingRequest | Mapping[str, Any]) -> MatchingResult:
        """Execute one matching run.

        Args:
            request: Validated request, or a mapping validated here

        Returns:
            MatchingResult with proposals, trace and stats

        Raises:
            pydantic.ValidationError: If a mapping request is malformed
            MissingAssetValueError: If a candidate cycle touches an unpriced asset
        """
        if not isinstance(request, MatchingRequest):
            request = MatchingRequest.model_validate(request)

        config = self.config
        now_iso = request.now_iso or utc_now_iso()
        include_diagnostics = _pick(
            request.include_cycle_diagnostics, config.include_cycle_diagnostics
        )

        valuation = merge_asset_values(
            request.intents,
            request.asset_values_usd,
            derive=request.derive_asset_values,
        )

        graph = build_compatibility_graph(
            request.intents,
            valuation,
            edge_intents=request.edge_intents,
            now_iso=now_iso,
        )

        enumeration = find_bounded_simple_cycles(
            graph.edges,
            min_cycle_length=_pick(request.min_cycle_length, config.min_cycle_length),
            max_cycle_length=_pick(request.max_cycle_length, config.max_cycle_length),
            max_enumerated_cycles=_pick(
                request.max_enumerated_cycles, config.max_enumerated_cycles
            ),
            timeout_ms=_pick(request.timeout_ms, config.timeout_ms),
        )

        try:
            selection = select_disjoint_proposals(
                enumeration.cycles,
                graph.by_id,
                valuation,
                edge_meta=graph.edge_meta,
                fee_rate=config.fee_rate,
                exact_component_limit=config.exact_component_limit,
                max_proposals=request.max_proposals,
            )
        except MissingAssetValueError as err:
            logger.error(
                "matching_run_failed",
                reason="missing_asset_value",
                asset_id=err.asset_id,
                intents_active=graph.intent_count,
                candidate_cycles=len(enumeration.cycles),
            )
            raise

        stats = MatchingStats(
            intents_active=graph.intent_count,
            edges=graph.edge_count,
            candidate_cycles=len(enumeration.cycles),
            candidate_proposals=selection.candidates_count,
            selected_proposals=len(selection.selected),
        )
        if include_diagnostics:
            stats.cycle_enumeration_limited = enumeration.diagnostics.max_cycles_reached
            stats.cycle_enumeration_timed_out = enumeration.diagnostics.timeout_reached

        logger.info(
            "matching_run_completed",
            now_iso=now_iso,
            intents_total=len(request.intents),
            intents_active=stats.intents_active,
            edges=stats.edges,
            candidate_cycles=stats.candidate_cycles,
            candidate_proposals=stats.candidate_proposals,
            selected_proposals=stats.selected_proposals,
            enumeration_limited=enumeration.diagnostics.limited,
        )

        return MatchingResult(proposals=selection.selected, trace=selection.trace, stats=stats)


@lru_cache(maxsize=1)
def get_default_engine() -> MatchingEngine:
    """Engine configured from SWAPGRAPH_* environment variables (created once)."""
    return MatchingEngine(MatchingConfig.from_env())


def run_matching(
    request: MatchingRequest | Mapping[str, Any] | None = None,
    *,
    config: MatchingConfig | None = None,
    **fields: Any,
) -> MatchingResult:
    """Run one matching pass.

    Accepts a MatchingRequest, a mapping, or the request fields as keyword
    arguments (snake_case or camelCase):

        result = run_matching(intents=intents, asset_values_usd={"x": 100.0})

    Args:
        request: Request model or mapping
        config: Engine defaults (DEFAULT_MATCHING_CONFIG if omitted)
        **fields: Request fields, merged over a mapping request

    Returns:
        MatchingResult
    """
    if request is None:
        request = MatchingRequest.model_validate(fields)
    elif isinstance(request, MatchingRequest):
        if fields:
            raise TypeError("keyword fields cannot be combined with a MatchingRequest")
    else:
        request = MatchingRequest.model_validate({**request, **fields})

    return MatchingEngine(config).run(request)


__all__ = ["MatchingEngine", "get_default_engine", "run_matching"]
