"""Pydantic models for swap intents, proposals and matching runs."""

from swapgraph.models.intent import (
    Actor,
    Asset,
    EdgeIntent,
    EdgeIntentType,
    IntentStatus,
    SwapIntent,
    TimeConstraints,
    TrustConstraints,
    ValueBand,
    WantClause,
    WantClauseType,
    WantSpec,
)
from swapgraph.models.proposal import (
    CycleProposal,
    FeeLine,
    MatchingRequest,
    MatchingResult,
    MatchingStats,
    Participant,
    SelectionReason,
    SelectionTraceEntry,
)
from swapgraph.models.types import EPOCH_SENTINEL_ISO, Identifier, UsdAmount

__all__ = [
    # Types
    "EPOCH_SENTINEL_ISO",
    "Identifier",
    "UsdAmount",
    # Intent models
    "Actor",
    "Asset",
    "EdgeIntent",
    "EdgeIntentType",
    "IntentStatus",
    "SwapIntent",
    "TimeConstraints",
    "TrustConstraints",
    "ValueBand",
    "WantClause",
    "WantClauseType",
    "WantSpec",
    # Proposal / run models
    "CycleProposal",
    "FeeLine",
    "MatchingRequest",
    "MatchingResult",
    "MatchingStats",
    "Participant",
    "SelectionReason",
    "SelectionTraceEntry",
]
