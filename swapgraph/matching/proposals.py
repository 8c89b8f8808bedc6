"""Turning one candidate cycle into a scored, fee'd cycle proposal.

Steps, in order:
1. Reject if any participant's max_cycle_length is below the cycle length
2. expires_at = earliest participant expiry (epoch sentinel if none)
3. Participant k gives its own offer and gets the offer of participant k+1
4. value_spread over the USD value each participant gets
5. confidence from length, spread and explicit prefer strength
6. Fee = fee_rate of each participant's received value, rounded to cents
7. Explainability lines
8. Deterministic id from the ordered intent ids
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import structlog

from swapgraph.matching.graph import EdgeMeta
from swapgraph.matching.scoring import compute_value_spread, round_half_up, score_cycle
from swapgraph.models.intent import SwapIntent
from swapgraph.models.proposal import CycleProposal, FeeLine, Participant
from swapgraph.models.types import EPOCH_SENTINEL_ISO, cycle_key, edge_key, parse_iso_timestamp
from swapgraph.valuation import AssetValuation

logger = structlog.get_logger()

DEFAULT_FEE_RATE = 0.01

PROPOSAL_ID_PREFIX = "cycle_"
PROPOSAL_ID_HASH_CHARS = 12


class RejectReason(Enum):
    """Why a cycle could not become a proposal."""

    MAX_CYCLE_LENGTH_EXCEEDED = "max_cycle_length_exceeded"
    UNKNOWN_INTENT = "unknown_intent"


@dataclass(frozen=True)
class ProposalBuildResult:
    """Outcome of building one proposal.

    Examples:
        result = build_proposal(cycle, by_id, valuation)
        if result.ok:
            publish(result.proposal)
        else:
            log(result.reason)
    """

    proposal: CycleProposal | None = None
    reason: RejectReason | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None and self.proposal is not None

    @classmethod
    def success(cls, proposal: CycleProposal) -> ProposalBuildResult:
        return cls(proposal=proposal)

    @classmethod
    def rejected(cls, reason: RejectReason) -> ProposalBuildResult:
        return cls(reason=reason)


def cycle_proposal_id(intent_ids: Sequence[str]) -> str:
    """Stable proposal id: hash of the ordered intent ids only."""
    digest = hashlib.sha256(cycle_key(intent_ids).encode("utf-8")).hexdigest()
    return PROPOSAL_ID_PREFIX + digest[:PROPOSAL_ID_HASH_CHARS]


def earliest_expiry(intents: Sequence[SwapIntent]) -> str:
    """Earliest expires_at among intents, as given on input."""
    earliest: tuple[datetime, str] | None = None
    for intent in intents:
        raw = intent.time_constraints.expires_at
        parsed = parse_iso_timestamp(raw)
        if raw is None or parsed is None:
            continue
        if earliest is None or parsed < earliest[0]:
            earliest = (parsed, raw)
    return earliest[1] if earliest is not None else EPOCH_SENTINEL_ISO


def cycle_prefer_strength(
    intent_ids: Sequence[str],
    edge_meta: Mapping[str, EdgeMeta] | None,
) -> float:
    """Sum of explicit prefer strengths over the cycle's edges."""
    if not edge_meta:
        return 0.0
    n = len(intent_ids)
    total = 0.0
    for k in range(n):
        meta = edge_meta.get(edge_key(intent_ids[k], intent_ids[(k + 1) % n]))
        if meta is not None:
            total += meta.explicit_prefer_strength
    return total


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def build_proposal(
    cycle_intent_ids: Sequence[str],
    by_id: Mapping[str, SwapIntent],
    valuation: AssetValuation,
    edge_meta: Mapping[str, EdgeMeta] | None = None,
    fee_rate: float = DEFAULT_FEE_RATE,
) -> ProposalBuildResult:
    """Build the proposal for one cycle.

    Args:
        cycle_intent_ids: Ordered intent ids; participant k receives from k+1
        by_id: Intents of the run by id
        valuation: Asset valuation
        edge_meta: Compatibility edge metadata (for the prefer bonus)
        fee_rate: Fraction of received value charged as fee

    Returns:
        ProposalBuildResult with the proposal, or the rejection reason

    Raises:
        MissingAssetValueError: If any received asset has no USD value
    """
    ids = list(cycle_intent_ids)
    length = len(ids)

    intents: list[SwapIntent] = []
    for intent_id in ids:
        intent = by_id.get(intent_id)
        if intent is None:
            logger.debug("proposal_rejected", cycle=ids, reason="unknown_intent", intent_id=intent_id)
            return ProposalBuildResult.rejected(RejectReason.UNKNOWN_INTENT)
        intents.append(intent)

    for intent in intents:
        max_len = intent.trust_constraints.max_cycle_length
        if max_len is not None and max_len < length:
            logger.debug(
                "proposal_rejected",
                cycle=ids,
                reason=RejectReason.MAX_CYCLE_LENGTH_EXCEEDED.value,
                intent_id=intent.id,
                max_cycle_length=max_len,
            )
            return ProposalBuildResult.rejected(RejectReason.MAX_CYCLE_LENGTH_EXCEEDED)

    expires_at = earliest_expiry(intents)

    participants: list[Participant] = []
    get_values: list[float] = []
    for k, intent in enumerate(intents):
        provider = intents[(k + 1) % length]
        get_values.append(valuation.value_of_assets(provider.offer))
        participants.append(
            Participant(
                intent_id=intent.id,
                actor=intent.actor,
                give=list(intent.offer),
                get=list(provider.offer),
            )
        )

    value_spread = round_half_up(compute_value_spread(get_values), 4)
    prefer_strength = cycle_prefer_strength(ids, edge_meta)
    confidence = score_cycle(length, value_spread, prefer_strength)

    fee_breakdown = [
        FeeLine(actor=participant.actor, fee_usd=round_half_up(get_value * fee_rate, 2))
        for participant, get_value in zip(participants, get_values, strict=True)
    ]

    explainability = [
        "All wants satisfied within explicit constraints",
        f"cycle_length={length}",
        f"value_spread={_format_number(value_spread)}",
        f"explicit_preference_strength={_format_number(round_half_up(prefer_strength, 4))}",
        f"confidence_score={_format_number(confidence)}",
    ]

    proposal = CycleProposal(
        id=cycle_proposal_id(ids),
        expires_at=expires_at,
        participants=participants,
        confidence_score=confidence,
        value_spread=value_spread,
        fee_breakdown=fee_breakdown,
        explainability=explainability,
    )
    return ProposalBuildResult.success(proposal)


__all__ = [
    "DEFAULT_FEE_RATE",
    "ProposalBuildResult",
    "RejectReason",
    "build_proposal",
    "cycle_prefer_strength",
    "cycle_proposal_id",
    "earliest_expiry",
]
